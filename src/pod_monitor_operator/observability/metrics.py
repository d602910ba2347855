"""
Prometheus metrics for the pod monitor operator.

This module provides:
- MetricSink: the labeled gauges published to the monitoring backend
  (container terminations and certificate expiry)
- Operator self-metrics for reconciliation performance and health
- MetricsServer: an aiohttp server exposing /metrics and probe endpoints
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager

# aiohttp is provided transitively by Kopf; the metrics server reuses it
# to keep the HTTP stack consistent with Kopf's own probes.
from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from pod_monitor_operator.constants import DEFAULT_METRICS_PREFIX, METRIC_FAMILIES

logger = logging.getLogger(__name__)

LabelKey = tuple[tuple[str, str], ...]

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None
_metric_sink: "MetricSink | None" = None

# Operator self-metrics
RECONCILIATION_TOTAL = Counter(
    "pod_monitor_operator_reconciliation_total",
    "Total number of reconciliation attempts",
    ["resource_type", "result"],
    registry=None,  # Will be set during initialization
)

RECONCILIATION_DURATION = Histogram(
    "pod_monitor_operator_reconciliation_duration_seconds",
    "Time spent on reconciliation operations",
    ["resource_type"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "pod_monitor_operator_reconciliation_errors_total",
    "Total number of reconciliation errors",
    ["resource_type", "error_type", "retryable"],
    registry=None,
)

RESTART_EVENTS_TOTAL = Counter(
    "pod_monitor_operator_restart_events_total",
    "Total number of container restarts reported",
    ["namespace"],
    registry=None,
)

TRACKED_CONTAINERS = Gauge(
    "pod_monitor_operator_tracked_containers",
    "Number of container slots held in restart tracking state",
    [],
    registry=None,
)

CERTIFICATE_EVALUATION_ERRORS = Counter(
    "pod_monitor_operator_certificate_evaluation_errors_total",
    "Total number of certificate slots that could not be evaluated",
    ["cert_type", "error_type"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        # Register all metrics with the registry
        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            RESTART_EVENTS_TOTAL,
            TRACKED_CONTAINERS,
            CERTIFICATE_EVALUATION_ERRORS,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


def _label_key(labels: Mapping[str, str]) -> LabelKey:
    """Canonical, order-independent key for a label set."""
    return tuple(sorted(labels.items()))


class MetricSink:
    """
    Labeled observations published to the monitoring backend.

    Each family is a prometheus Gauge. Alongside the gauges the sink keeps
    an index from canonical sorted label tuples to the last value set,
    which backs partial-label deletion and introspection. The index and
    the gauges are mutated under one lock, so concurrent handlers can
    publish and delete label sets safely.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        prefix: str = DEFAULT_METRICS_PREFIX,
        families: Mapping[str, tuple[str, tuple[str, ...]]] = METRIC_FAMILIES,
    ):
        """
        Create the gauge families.

        Args:
            registry: Registry to expose the gauges on (None = unregistered)
            prefix: Prepended to each family name as "<prefix>_"
            families: Family name -> (help text, label names)
        """
        self._lock = threading.Lock()
        self._prefix = prefix
        self._gauges: dict[str, Gauge] = {}
        self._label_names: dict[str, tuple[str, ...]] = {}
        self._cells: dict[str, dict[LabelKey, float]] = {}

        for family, (documentation, label_names) in families.items():
            self._gauges[family] = Gauge(
                self.full_name(family),
                documentation,
                list(label_names),
                registry=registry,
            )
            self._label_names[family] = tuple(label_names)
            self._cells[family] = {}

    def full_name(self, family: str) -> str:
        """Exposed metric name for a family."""
        return f"{self._prefix}_{family}" if self._prefix else family

    def _check_family(self, family: str) -> tuple[str, ...]:
        try:
            return self._label_names[family]
        except KeyError:
            raise KeyError(f"Unknown metric family: {family}") from None

    def set(self, family: str, labels: Mapping[str, str], value: float) -> None:
        """
        Record an observation.

        Args:
            family: Metric family name (without prefix)
            labels: Complete label set for the family
            value: Numeric value to publish
        """
        label_names = self._check_family(family)
        if set(labels) != set(label_names):
            raise ValueError(
                f"Labels {sorted(labels)} do not match {family} labels "
                f"{sorted(label_names)}"
            )

        labels = {name: str(labels[name]) for name in label_names}
        with self._lock:
            self._cells[family][_label_key(labels)] = float(value)
            self._gauges[family].labels(**labels).set(value)

    def delete_partial_match(self, family: str, labels: Mapping[str, str]) -> int:
        """
        Delete every observation whose labels include the given subset.

        Args:
            family: Metric family name (without prefix)
            labels: Label subset to match

        Returns:
            Number of observations removed
        """
        label_names = self._check_family(family)
        wanted = {name: str(value) for name, value in labels.items()}

        with self._lock:
            cells = self._cells[family]
            matches = [
                key
                for key in cells
                if all(dict(key).get(name) == value for name, value in wanted.items())
            ]
            for key in matches:
                del cells[key]
                values = dict(key)
                self._gauges[family].remove(*(values[name] for name in label_names))

        if matches:
            logger.debug(
                f"Deleted {len(matches)} {family} series matching {wanted}",
            )
        return len(matches)

    def value(self, family: str, labels: Mapping[str, str]) -> float | None:
        """Last value published for an exact label set, if any."""
        self._check_family(family)
        key = _label_key({name: str(value) for name, value in labels.items()})
        with self._lock:
            return self._cells[family].get(key)

    def series(self, family: str) -> dict[LabelKey, float]:
        """Snapshot of all series currently published for a family."""
        self._check_family(family)
        with self._lock:
            return dict(self._cells[family])


def get_metric_sink() -> MetricSink:
    """Get or create the global metric sink bound to the global registry."""
    global _metric_sink

    if _metric_sink is None:
        from pod_monitor_operator.settings import settings

        _metric_sink = MetricSink(
            registry=get_metrics_registry(), prefix=settings.metrics_prefix
        )

    return _metric_sink


class MetricsCollector:
    """Collects and manages self-metrics for the pod monitor operator."""

    def __init__(self):
        """Initialize metrics collector."""
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_reconciliation(self, resource_type: str):
        """
        Context manager to track reconciliation operations.

        Args:
            resource_type: Type of resource being reconciled (pod, secret)
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"

            error_type = type(e).__name__
            retryable = "true" if getattr(e, "retryable", False) else "false"

            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                error_type=error_type,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type,
                result=result,
            ).inc()

            RECONCILIATION_DURATION.labels(resource_type=resource_type).observe(
                duration
            )

    def record_restart_event(self, namespace: str) -> None:
        """Count a container restart that was published."""
        RESTART_EVENTS_TOTAL.labels(namespace=namespace).inc()

    def update_tracked_containers(self, count: int) -> None:
        """Set the number of container slots held by the restart tracker."""
        TRACKED_CONTAINERS.set(count)

    def record_certificate_error(self, cert_type: str, error_type: str) -> None:
        """
        Count a certificate slot that could not be evaluated.

        Args:
            cert_type: Slot key inside the secret
            error_type: Exception class name
        """
        CERTIFICATE_EVALUATION_ERRORS.labels(
            cert_type=cert_type, error_type=error_type
        ).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(
        self,
        port: int = 8081,
        host: str = "0.0.0.0",
        registry: CollectorRegistry | None = None,
        readiness_check: Callable[[], bool] | None = None,
    ):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
            registry: Registry to expose (defaults to the global registry)
            readiness_check: Returns True once the operator can reconcile
        """
        self.port = port
        self.host = host
        self.registry = registry
        self.readiness_check = readiness_check
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        # Set up routes
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the metrics server."""
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = self.registry or get_metrics_registry()
            metrics_data = generate_latest(registry)
            return Response(body=metrics_data, content_type=CONTENT_TYPE_LATEST)
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _ready_handler(self, request: Request) -> Response:
        """Handle /ready endpoint for readiness probes."""
        try:
            ready = self.readiness_check() if self.readiness_check else True
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return json_response(
                {
                    "status": "not_ready",
                    "error": f"{type(e).__name__}. Check logs for details.",
                    "timestamp": time.time(),
                },
                status=503,
            )

        if ready:
            return json_response({"status": "ready", "timestamp": time.time()})
        return json_response(
            {"status": "not_ready", "timestamp": time.time()}, status=503
        )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes compatibility."""
        # Simple health check that returns 200 if the server is running
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
            logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")

        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()


# Global metrics collector instance
metrics_collector = MetricsCollector()
