#!/usr/bin/env python3
"""
Pod Monitor Operator - Main entry point for the Kopf-based operator.

This operator republishes two cluster facts as Prometheus metrics:
- Container restarts of every pod, reported once per restart
- Certificate expiry of the identity issuer secret, re-checked hourly

Usage:
    python -m pod_monitor_operator.operator
    # Or with kopf directly:
    kopf run -m pod_monitor_operator.operator --all-namespaces

Environment Variables:
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    METRICS_PORT: Port of the /metrics endpoint
    CERTIFICATE_SECRET_NAMESPACE / CERTIFICATE_SECRET_NAME: Certificate target
"""

import logging
import sys
from typing import Any

import kopf
from kubernetes import config

from pod_monitor_operator.constants import KIND_SECRET

# Import all handler modules to register them with kopf
from pod_monitor_operator.handlers import pods, secrets  # noqa: F401
from pod_monitor_operator.models import ObjectRef
from pod_monitor_operator.observability.logging import setup_structured_logging
from pod_monitor_operator.observability.metrics import (
    MetricSink,
    MetricsServer,
    get_metric_sink,
)
from pod_monitor_operator.observability.tracing import setup_tracing, shutdown_tracing
from pod_monitor_operator.services import (
    CertificateWatcher,
    ReconcileDispatcher,
    RecheckTimer,
    RestartTracker,
)
from pod_monitor_operator.settings import Settings
from pod_monitor_operator.settings import settings as operator_settings
from pod_monitor_operator.utils.kubernetes import KubernetesObjectFetcher, ObjectFetcher

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
        log_health_probes=operator_settings.log_health_probes,
    )


def certificate_target(current: Settings) -> ObjectRef:
    """The one secret routed to the certificate path."""
    return ObjectRef(
        namespace=current.certificate_secret_namespace,
        name=current.certificate_secret_name,
        kind=KIND_SECRET,
    )


def build_dispatcher(
    fetcher: ObjectFetcher,
    sink: MetricSink,
    current: Settings,
) -> ReconcileDispatcher:
    """
    Wire the reconciliation engine together.

    Args:
        fetcher: Source of current object state
        sink: Destination for published metrics
        current: Operator settings

    Returns:
        Dispatcher owning a fresh RestartTracker
    """
    watcher = CertificateWatcher(
        fetcher=fetcher,
        sink=sink,
        recheck_interval=current.certificate_recheck_interval_seconds,
    )
    return ReconcileDispatcher(
        fetcher=fetcher,
        tracker=RestartTracker(),
        sink=sink,
        certificate_watcher=watcher,
        certificate_target=certificate_target(current),
        reconcile_timeout=current.reconcile_timeout_seconds,
    )


def build_recheck_timer(
    dispatcher: ReconcileDispatcher, current: Settings
) -> RecheckTimer:
    """Timer re-evaluating the certificate target regardless of changes."""
    target = certificate_target(current)
    return RecheckTimer(
        name=f"{target.namespace}/{target.name}",
        reconcile=lambda: dispatcher.dispatch(target),
        interval=current.certificate_recheck_interval_seconds,
    )


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any
) -> None:
    """
    Operator startup configuration.

    Loads the Kubernetes configuration, starts the metrics server, builds
    the reconciliation engine into the memo and starts the certificate
    recheck timer.
    """
    logger.info("Starting Pod Monitor Operator...")
    settings.watching.reconnect_backoff = 1.0
    settings.execution.max_workers = 20

    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.info("Loaded kubeconfig configuration")
        except config.ConfigException:
            logger.error("Failed to load Kubernetes configuration")
            raise

    setup_tracing(
        enabled=operator_settings.tracing_enabled,
        endpoint=operator_settings.tracing_endpoint,
        sample_rate=operator_settings.tracing_sample_rate,
    )

    dispatcher = build_dispatcher(
        KubernetesObjectFetcher(), get_metric_sink(), operator_settings
    )
    recheck_timer = build_recheck_timer(dispatcher, operator_settings)
    memo.dispatcher = dispatcher
    memo.recheck_timer = recheck_timer

    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port,
            host=operator_settings.metrics_host,
            readiness_check=lambda: recheck_timer.running,
        )
        await metrics_server.start()
        memo.metrics_server = metrics_server
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logger.warning("Continuing without metrics server")

    recheck_timer.start()
    target = dispatcher.certificate_target
    logger.info(
        f"Tracking container restarts cluster-wide and certificates in "
        f"{target.namespace}/{target.name}"
    )


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_: Any) -> None:
    """
    Operator cleanup handler.

    Stops the recheck timer and the metrics server, and flushes traces.
    """
    logger.info("Shutting down Pod Monitor Operator...")

    recheck_timer: RecheckTimer | None = memo.get("recheck_timer")
    if recheck_timer is not None:
        await recheck_timer.stop()

    metrics_server: MetricsServer | None = memo.get("metrics_server")
    if metrics_server is not None:
        await metrics_server.stop()

    shutdown_tracing()


@kopf.on.probe(id="restart_tracking")
async def restart_tracking_probe(memo: kopf.Memo, **_: Any) -> dict[str, Any]:
    """Report the size of the restart tracking state."""
    dispatcher: ReconcileDispatcher | None = memo.get("dispatcher")
    tracked = len(dispatcher.tracker) if dispatcher is not None else 0
    return {"tracked_containers": tracked}


@kopf.on.probe(id="certificate_recheck")
async def certificate_recheck_probe(memo: kopf.Memo, **_: Any) -> dict[str, Any]:
    """Report whether the certificate recheck timer is alive."""
    recheck_timer: RecheckTimer | None = memo.get("recheck_timer")
    if recheck_timer is None:
        return {"status": "not_started", "runs": 0}
    return {
        "status": "running" if recheck_timer.running else "stopped",
        "runs": recheck_timer.runs,
    }


def main() -> None:
    """
    Main entry point for the operator.

    Configures logging and runs kopf cluster-wide.
    """
    configure_logging()

    try:
        kopf.run(
            clusterwide=True,
            liveness_endpoint="http://0.0.0.0:8080/healthz",
        )
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
