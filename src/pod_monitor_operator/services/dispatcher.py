"""
Routing of change notifications to the restart or certificate path.

One well-known secret routes to the CertificateWatcher; every other
notification is treated as a pod whose container statuses are checked
for new restarts.
"""

import logging
import time

from ..constants import KIND_SECRET, METRIC_CONTAINER_LAST_TERMINATION_INFO
from ..errors import NotFoundError, ReconciliationTimeoutError
from ..models import ObjectRef, ReconcileResult, RestartObservation
from ..observability.metrics import MetricsCollector, MetricSink, metrics_collector
from ..utils.kubernetes import ObjectFetcher
from .certificate_watcher import CertificateWatcher
from .restart_tracker import RestartTracker

logger = logging.getLogger(__name__)


class ReconcileDispatcher:
    """Dispatches reconciliations to the pod-restart or certificate path."""

    def __init__(
        self,
        fetcher: ObjectFetcher,
        tracker: RestartTracker,
        sink: MetricSink,
        certificate_watcher: CertificateWatcher,
        certificate_target: ObjectRef,
        reconcile_timeout: float | None = None,
        collector: MetricsCollector | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            fetcher: Source of current pod state
            tracker: Restart tracking state, owned for the process lifetime
            sink: Destination for termination-info gauges
            certificate_watcher: Handles the certificate path
            certificate_target: The one secret routed to the certificate path
            reconcile_timeout: Seconds each reconciliation may take (None = no limit)
            collector: Self-metrics collector (defaults to the global one)
        """
        self.fetcher = fetcher
        self.tracker = tracker
        self.sink = sink
        self.certificate_watcher = certificate_watcher
        self.certificate_target = certificate_target
        self.reconcile_timeout = reconcile_timeout
        self.collector = collector or metrics_collector

    def is_certificate_subject(self, ref: ObjectRef) -> bool:
        return (
            ref.kind == KIND_SECRET
            and ref.namespace == self.certificate_target.namespace
            and ref.name == self.certificate_target.name
        )

    def _deadline(self) -> float | None:
        if self.reconcile_timeout is None:
            return None
        return time.monotonic() + self.reconcile_timeout

    async def dispatch(self, ref: ObjectRef) -> ReconcileResult:
        """
        Reconcile the subject of a change notification.

        Raises:
            FetchError: If current state could not be read (retryable)
            ReconciliationTimeoutError: If the deadline passed mid-way
        """
        deadline = self._deadline()

        if self.is_certificate_subject(ref):
            async with self.collector.track_reconciliation("secret"):
                return await self.certificate_watcher.reconcile(ref, deadline=deadline)

        async with self.collector.track_reconciliation("pod"):
            return await self.reconcile_pod(ref, deadline=deadline)

    async def reconcile_pod(
        self, ref: ObjectRef, deadline: float | None = None
    ) -> ReconcileResult:
        """
        Publish a termination-info metric for each newly observed restart.

        A pod that no longer exists is a no-op; tracker eviction happens
        only through handle_deletion().
        """
        try:
            observations = await self.fetcher.fetch_restart_observations(
                ref.namespace, ref.name
            )
        except NotFoundError:
            logger.debug(f"Pod {ref.namespace}/{ref.name} not found, ignoring")
            return ReconcileResult()

        for index, observation in enumerate(observations):
            if deadline is not None and time.monotonic() >= deadline:
                raise ReconciliationTimeoutError(
                    str(ref), processed=index, remaining=len(observations) - index
                )
            self.record_observation(observation)

        return ReconcileResult()

    def record_observation(self, observation: RestartObservation) -> bool:
        """
        Feed one observation to the tracker and publish it if it is new.

        Returns:
            True if a termination-info metric was published
        """
        termination = observation.termination
        if termination is None:
            self.tracker.observe_restart(observation)
            return False

        is_new_event, prior = self.tracker.observe_restart(observation)
        if not is_new_event:
            return False

        identity = observation.identity

        logger.info(
            f"Detected container restart of {identity} "
            f"({prior} -> {observation.restart_count}, reason: {termination.reason})",
            extra={
                "namespace": identity.namespace,
                "pod": identity.parent_name,
                "container": identity.container_name,
                "restart_count": observation.restart_count,
            },
        )

        self.sink.set(
            METRIC_CONTAINER_LAST_TERMINATION_INFO,
            {
                "namespace": identity.namespace,
                "pod": identity.parent_name,
                "container": identity.container_name,
                "reason": termination.reason,
                "exit_code": str(termination.exit_code),
            },
            termination.finished_at_unix,
        )

        self.collector.record_restart_event(identity.namespace)
        self.collector.update_tracked_containers(len(self.tracker))
        return True

    async def handle_deletion(self, ref: ObjectRef, uid: str | None = None) -> bool:
        """
        Evict tracker state of a pod once its deletion is confirmed.

        The deletion is confirmed by fetching the pod. Tracker state is
        evicted when the pod is not found, or when the name is now held by
        a pod with a different uid than the deleted one. A pod still
        carrying the deleted uid keeps its state.

        Args:
            ref: The deleted pod
            uid: uid of the deleted pod, from the watch event

        Returns:
            True if the deletion was confirmed and state evicted

        Raises:
            FetchError: If the confirmation lookup failed
        """
        try:
            live_uid = await self.fetcher.fetch_pod_uid(ref.namespace, ref.name)
        except NotFoundError:
            live_uid = None

        if live_uid is not None and (uid is None or live_uid == uid):
            logger.debug(
                f"Pod {ref.namespace}/{ref.name} still exists after delete event, "
                f"keeping restart state"
            )
            return False

        if live_uid is not None:
            logger.info(
                f"Pod {ref.namespace}/{ref.name} was recreated "
                f"(uid {uid} -> {live_uid}), dropping restart state of the old pod"
            )
        self.tracker.evict(ref.namespace, ref.name)
        self.collector.update_tracked_containers(len(self.tracker))
        return True
