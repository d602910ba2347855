"""
Secret handlers - Tracks certificate expiry of one well-known secret.

Only the configured certificate secret is handled. Any event, including
deletion, triggers a reconciliation: a deleted secret is reported as
not found, which removes its metrics. Periodic re-evaluation without
events is driven by the RecheckTimer started in the operator startup.
"""

import logging
from typing import Any

import kopf

from pod_monitor_operator.constants import KIND_SECRET
from pod_monitor_operator.errors import OperatorError
from pod_monitor_operator.models import ObjectRef
from pod_monitor_operator.observability.logging import (
    generate_correlation_id,
    set_correlation_id,
)
from pod_monitor_operator.observability.tracing import traced_handler
from pod_monitor_operator.services import ReconcileDispatcher
from pod_monitor_operator.settings import settings
from pod_monitor_operator.utils.handler_logging import log_handler_entry
from pod_monitor_operator.utils.retry import retry_reconcile

logger = logging.getLogger(__name__)


def is_certificate_secret(name: str, namespace: str, **_: Any) -> bool:
    """Filter for the configured certificate secret."""
    return (
        namespace == settings.certificate_secret_namespace
        and name == settings.certificate_secret_name
    )


@kopf.on.event("v1", "secrets", when=is_certificate_secret)
@traced_handler("reconcile_certificate_secret")
async def on_certificate_secret_event(
    event: dict[str, Any],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """
    Re-evaluate the certificate secret on every change.

    Args:
        event: Raw watch event (type and object)
        name: Secret name
        namespace: Secret namespace
        memo: Operator memo holding the dispatcher
    """
    set_correlation_id(generate_correlation_id())
    log_handler_entry(str(event.get("type")), "secret", name, namespace)

    dispatcher: ReconcileDispatcher = memo.dispatcher
    ref = ObjectRef(namespace=namespace, name=name, kind=KIND_SECRET)

    try:
        await retry_reconcile(
            lambda: dispatcher.dispatch(ref),
            description=str(ref),
            max_retries=settings.fetch_max_retries,
            initial_delay=settings.fetch_retry_initial_delay_seconds,
            backoff_factor=settings.fetch_retry_backoff_factor,
        )
    except OperatorError as e:
        logger.error(f"Unable to reconcile {ref}: {e}")
        raise e.as_kopf_error() from e
