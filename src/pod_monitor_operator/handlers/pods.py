"""
Pod handlers - Detects container restarts cluster-wide.

Every pod event is dispatched to the restart path, which fetches the pod's
current state and publishes one termination-info metric per new restart.
DELETED events evict the pod's restart state once the pod is gone or its
name is held by a pod with a new uid.
"""

import logging
from functools import partial
from typing import Any

import kopf

from pod_monitor_operator.constants import KIND_POD
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


@kopf.on.event("v1", "pods")
@traced_handler("reconcile_pod")
async def on_pod_event(
    event: dict[str, Any],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    uid: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Route a pod watch event to the dispatcher.

    Args:
        event: Raw watch event (type and object)
        name: Pod name
        namespace: Pod namespace
        memo: Operator memo holding the dispatcher
        uid: uid of the pod the event is about
    """
    set_correlation_id(generate_correlation_id())
    event_type = event.get("type")
    log_handler_entry(str(event_type), "pod", name, namespace)

    dispatcher: ReconcileDispatcher = memo.dispatcher
    ref = ObjectRef(namespace=namespace, name=name, kind=KIND_POD)

    if event_type == "DELETED":
        operation = partial(dispatcher.handle_deletion, ref, uid=uid)
    else:
        operation = partial(dispatcher.dispatch, ref)

    try:
        await retry_reconcile(
            operation,
            description=str(ref),
            max_retries=settings.fetch_max_retries,
            initial_delay=settings.fetch_retry_initial_delay_seconds,
            backoff_factor=settings.fetch_retry_backoff_factor,
        )
    except OperatorError as e:
        logger.error(f"Unable to reconcile {ref}: {e}")
        raise e.as_kopf_error() from e
