"""
Restart tracking state shared by all pod reconciliations.

The tracker remembers the last restart counter reported for every container
slot, so that each physical restart is published exactly once no matter how
many times, or in which order, the same pod state is delivered.
"""

import logging
import threading

from ..models import ContainerIdentity, RestartObservation

logger = logging.getLogger(__name__)


class RestartTracker:
    """
    Concurrency-safe map from container identity to last-seen restart counter.

    Invariants:
    - A stored counter never decreases.
    - An identity is absent until first reported with a termination snapshot.
    - Entries are only removed by parent-scoped eviction.

    Every operation holds a single lock for exactly one lookup-compare-and-set
    or one full sweep and never performs I/O while holding it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[ContainerIdentity, int] = {}

    def observe(
        self,
        identity: ContainerIdentity,
        candidate_counter: int,
        has_termination_snapshot: bool,
    ) -> tuple[bool, int]:
        """
        Report a candidate restart counter for a container.

        Args:
            identity: Container slot the counter belongs to
            candidate_counter: Restart counter as currently reported
            has_termination_snapshot: Whether a last-termination record is present

        Returns:
            (is_new_event, prior_counter). When is_new_event is True the stored
            counter has already been advanced to candidate_counter.
        """
        with self._lock:
            prior = self._counters.get(identity, 0)
            is_new_event = candidate_counter > prior and has_termination_snapshot
            if is_new_event:
                self._counters[identity] = candidate_counter

        if candidate_counter > prior and not has_termination_snapshot:
            # The termination snapshot can lag the counter by one poll
            logger.debug(
                f"Restart counter of {identity} advanced to {candidate_counter} "
                f"without a termination snapshot; waiting for it",
            )
        return is_new_event, prior

    def observe_restart(self, observation: RestartObservation) -> tuple[bool, int]:
        """Convenience wrapper around observe() for a RestartObservation."""
        return self.observe(
            observation.identity,
            observation.restart_count,
            observation.has_termination_snapshot,
        )

    def evict(self, namespace: str, parent_name: str) -> int:
        """
        Drop every entry belonging to a removed parent object.

        Args:
            namespace: Namespace of the removed parent
            parent_name: Name of the removed parent

        Returns:
            Number of entries removed
        """
        with self._lock:
            doomed = [
                identity
                for identity in self._counters
                if identity.belongs_to(namespace, parent_name)
            ]
            for identity in doomed:
                del self._counters[identity]

        if doomed:
            logger.info(
                f"Evicted {len(doomed)} tracked container(s) of {namespace}/{parent_name}",
                extra={"namespace": namespace, "pod": parent_name},
            )
        return len(doomed)

    def get(self, identity: ContainerIdentity) -> int | None:
        """Stored counter for an identity, or None if never observed."""
        with self._lock:
            return self._counters.get(identity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._counters
