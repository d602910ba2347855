"""
Certificate expiry reconciliation for a single secret.

Each reconciliation reads the secret afresh, evaluates every recognized
certificate slot and republishes two gauges per slot: the absolute expiry
timestamp and the signed number of days remaining. The watcher keeps no
state between reconciliations.
"""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from ..constants import (
    CERTIFICATE_SLOT_KEYS,
    DEFAULT_CERTIFICATE_RECHECK_INTERVAL,
    METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION,
    METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP,
)
from ..errors import CertificateError, NotFoundError, ReconciliationTimeoutError
from ..models import (
    CertificateExpiryFact,
    CertificateKeyMaterial,
    ObjectRef,
    ReconcileResult,
)
from ..observability.metrics import MetricsCollector, MetricSink, metrics_collector
from ..utils.kubernetes import ObjectFetcher
from .certificate_evaluator import evaluate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CertificateWatcher:
    """Publishes expiry metrics for the certificates stored in one secret."""

    def __init__(
        self,
        fetcher: ObjectFetcher,
        sink: MetricSink,
        recheck_interval: float = DEFAULT_CERTIFICATE_RECHECK_INTERVAL,
        slot_keys: Iterable[str] = CERTIFICATE_SLOT_KEYS,
        clock: Callable[[], datetime] = _utcnow,
        collector: MetricsCollector | None = None,
    ):
        """
        Initialize the watcher.

        Args:
            fetcher: Source of current secret data
            sink: Destination for the expiry gauges
            recheck_interval: Seconds until the secret should be evaluated again
            slot_keys: Secret keys recognized as certificate slots
            clock: Returns the current time (timezone-aware)
            collector: Self-metrics collector (defaults to the global one)
        """
        self.fetcher = fetcher
        self.sink = sink
        self.recheck_interval = recheck_interval
        self.slot_keys = tuple(slot_keys)
        self.clock = clock
        self.collector = collector or metrics_collector

    async def reconcile(
        self, ref: ObjectRef, deadline: float | None = None
    ) -> ReconcileResult:
        """
        Evaluate every recognized certificate slot of a secret.

        A malformed slot is logged and skipped; it never prevents the other
        slots from being evaluated.

        Args:
            ref: The secret to evaluate
            deadline: time.monotonic() value after which remaining slots
                are abandoned

        Returns:
            Result requesting a re-check after the recheck interval

        Raises:
            FetchError: If the secret could not be read
            ReconciliationTimeoutError: If the deadline passed mid-way
        """
        try:
            data = await self.fetcher.fetch_secret_data(ref.namespace, ref.name)
        except NotFoundError:
            removed = self.clear(ref.namespace, ref.name)
            logger.info(
                f"Secret {ref.namespace}/{ref.name} not found, "
                f"removed {removed} certificate series",
                extra={"namespace": ref.namespace, "secret_name": ref.name},
            )
            return ReconcileResult(requeue_after=self.recheck_interval)

        materials = [
            CertificateKeyMaterial(
                namespace=ref.namespace,
                secret_name=ref.name,
                cert_type=key,
                raw_bytes=data[key],
            )
            for key in self.slot_keys
            if key in data
        ]

        if not materials:
            logger.warning(
                f"Secret {ref.namespace}/{ref.name} holds none of the "
                f"recognized certificate keys {list(self.slot_keys)}",
            )

        for index, material in enumerate(materials):
            if deadline is not None and time.monotonic() >= deadline:
                raise ReconciliationTimeoutError(
                    str(ref), processed=index, remaining=len(materials) - index
                )
            self.check_certificate(material)

        return ReconcileResult(requeue_after=self.recheck_interval)

    def check_certificate(
        self, material: CertificateKeyMaterial
    ) -> CertificateExpiryFact | None:
        """
        Evaluate one slot and publish its metrics.

        Returns:
            The derived fact, or None if the slot could not be evaluated
            (its previous metric values, if any, are left untouched)
        """
        try:
            expires_at = evaluate(material.raw_bytes)
        except CertificateError as e:
            logger.error(
                f"Failed to parse certificate {material.cert_type} in "
                f"{material.namespace}/{material.secret_name}: {e}",
                extra={
                    "namespace": material.namespace,
                    "secret_name": material.secret_name,
                    "cert_type": material.cert_type,
                    "error_type": type(e).__name__,
                },
            )
            self.collector.record_certificate_error(
                material.cert_type, type(e).__name__
            )
            return None

        fact = CertificateExpiryFact(
            namespace=material.namespace,
            secret_name=material.secret_name,
            cert_type=material.cert_type,
            expires_at=expires_at,
        )
        self.publish(fact)
        return fact

    def publish(self, fact: CertificateExpiryFact) -> float:
        """
        Publish both expiry gauges for a fact.

        Returns:
            The days-remaining value that was published
        """
        days_remaining = fact.days_remaining(self.clock())

        self.sink.set(
            METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP, fact.labels, fact.expires_at_unix
        )
        self.sink.set(METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, fact.labels, days_remaining)

        logger.info(
            f"Certificate {fact.cert_type} in {fact.namespace}/{fact.secret_name} "
            f"expires at {fact.expires_at.isoformat()} ({days_remaining:.2f} days)",
            extra={
                **fact.labels,
                "expires_at": fact.expires_at.isoformat(),
                "days_remaining": days_remaining,
            },
        )
        return days_remaining

    def clear(self, namespace: str, secret_name: str) -> int:
        """Remove every expiry series published for a secret."""
        labels = {"namespace": namespace, "secret_name": secret_name}
        return self.sink.delete_partial_match(
            METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP, labels
        ) + self.sink.delete_partial_match(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels
        )
