"""
Observability utilities for the pod monitor operator.

This module provides the published metric sink, operator self-metrics,
tracing and structured logging capabilities.
"""

from .logging import setup_structured_logging
from .metrics import (
    MetricSink,
    MetricsServer,
    get_metric_sink,
    get_metrics_registry,
    metrics_collector,
)

__all__ = [
    "MetricSink",
    "MetricsServer",
    "get_metric_sink",
    "get_metrics_registry",
    "metrics_collector",
    "setup_structured_logging",
]
