"""
Service layer for the pod monitor operator.

This module provides the reconciliation engine, separated from the kopf
handler layer: restart tracking, certificate evaluation, and routing.
"""

from .certificate_evaluator import evaluate
from .certificate_watcher import CertificateWatcher
from .dispatcher import ReconcileDispatcher
from .recheck_timer import RecheckTimer
from .restart_tracker import RestartTracker

__all__ = [
    "evaluate",
    "CertificateWatcher",
    "ReconcileDispatcher",
    "RecheckTimer",
    "RestartTracker",
]
