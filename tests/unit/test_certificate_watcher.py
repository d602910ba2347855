"""
Unit tests for CertificateWatcher.

The fetcher is faked; metrics are published to a MetricSink bound to a
fresh registry, so exposition can be checked with get_sample_value().
"""

import time
from datetime import UTC, datetime, timedelta

import pytest

from pod_monitor_operator.constants import (
    KIND_SECRET,
    METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION,
    METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP,
)
from pod_monitor_operator.errors import (
    FetchError,
    NotFoundError,
    ReconciliationTimeoutError,
)
from pod_monitor_operator.models import CertificateKeyMaterial, ObjectRef
from pod_monitor_operator.services.certificate_watcher import CertificateWatcher
from tests.fixtures.certificates import (
    LINKERD_ISSUER_NOT_AFTER,
    LINKERD_ISSUER_PEM,
    make_certificate_pem,
    truncate_certificate_pem,
)

NOW = datetime(2025, 8, 4, 23, 12, 26, tzinfo=UTC)
SECRET = ObjectRef(namespace="linkerd", name="linkerd-identity-issuer", kind=KIND_SECRET)


def labels(cert_type: str, secret: ObjectRef = SECRET) -> dict[str, str]:
    return {
        "namespace": secret.namespace,
        "secret_name": secret.name,
        "cert_type": cert_type,
    }


@pytest.fixture
def watcher(fetcher, sink, collector):
    return CertificateWatcher(
        fetcher=fetcher, sink=sink, clock=lambda: NOW, collector=collector
    )


class TestReconcile:
    """Tests for reconcile()."""

    @pytest.mark.asyncio
    async def test_publishes_expiry_for_issuer_certificate(
        self, watcher, fetcher, sink, registry
    ):
        fetcher.fetch_secret_data.return_value = {"crt.pem": LINKERD_ISSUER_PEM}

        await watcher.reconcile(SECRET)

        fetcher.fetch_secret_data.assert_awaited_once_with(
            "linkerd", "linkerd-identity-issuer"
        )
        assert sink.value(
            METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP, labels("crt.pem")
        ) == float(int(LINKERD_ISSUER_NOT_AFTER.timestamp()))
        # Ten years including two leap days
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("crt.pem")
        ) == pytest.approx(3652.0)
        assert registry.get_sample_value(
            "pod_monitor_certificate_expiration_timestamp_seconds", labels("crt.pem")
        ) == float(int(LINKERD_ISSUER_NOT_AFTER.timestamp()))

    @pytest.mark.asyncio
    async def test_requeues_after_one_hour(self, watcher, fetcher):
        fetcher.fetch_secret_data.return_value = {"ca.crt": LINKERD_ISSUER_PEM}

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600

    @pytest.mark.asyncio
    async def test_every_recognized_slot_is_published(self, watcher, fetcher, sink):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": make_certificate_pem(NOW + timedelta(days=10)),
            "issuer.crt": make_certificate_pem(NOW + timedelta(days=20)),
            "tls.key": b"not a certificate slot",
        }

        await watcher.reconcile(SECRET)

        series = sink.series(METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION)
        assert len(series) == 2
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")
        ) == pytest.approx(10.0)
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("issuer.crt")
        ) == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_expired_certificate_has_negative_days(
        self, watcher, fetcher, sink
    ):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": make_certificate_pem(NOW - timedelta(days=3, hours=12))
        }

        await watcher.reconcile(SECRET)

        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")
        ) == pytest.approx(-3.5)

    @pytest.mark.asyncio
    async def test_malformed_slot_does_not_block_others(
        self, watcher, fetcher, sink, collector
    ):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": b"garbage",
            "issuer.crt": LINKERD_ISSUER_PEM,
        }

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600
        assert sink.value(METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")) is None
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("issuer.crt")
        ) is not None
        collector.record_certificate_error.assert_called_once_with(
            "ca.crt", "MalformedInputError"
        )

    @pytest.mark.asyncio
    async def test_truncated_certificate_does_not_block_others(
        self, watcher, fetcher, sink, collector
    ):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": truncate_certificate_pem(LINKERD_ISSUER_PEM),
            "issuer.crt": LINKERD_ISSUER_PEM,
        }

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600
        assert sink.value(METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")) is None
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("issuer.crt")
        ) == pytest.approx(3652.0)
        collector.record_certificate_error.assert_called_once_with(
            "ca.crt", "CertificateParseError"
        )

    @pytest.mark.asyncio
    async def test_failed_reevaluation_keeps_previous_values(
        self, watcher, fetcher, sink
    ):
        fetcher.fetch_secret_data.return_value = {"ca.crt": LINKERD_ISSUER_PEM}
        await watcher.reconcile(SECRET)

        fetcher.fetch_secret_data.return_value = {"ca.crt": b"garbage"}
        await watcher.reconcile(SECRET)

        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")
        ) == pytest.approx(3652.0)

    @pytest.mark.asyncio
    async def test_secret_without_recognized_keys(self, watcher, fetcher, sink):
        fetcher.fetch_secret_data.return_value = {"tls.crt": LINKERD_ISSUER_PEM}

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600
        assert sink.series(METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP) == {}

    @pytest.mark.asyncio
    async def test_custom_recheck_interval(self, fetcher, sink, collector):
        watcher = CertificateWatcher(
            fetcher=fetcher, sink=sink, recheck_interval=120, collector=collector
        )

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 120


class TestSecretNotFound:
    """A vanished secret removes its series."""

    @pytest.mark.asyncio
    async def test_not_found_clears_both_families(
        self, watcher, fetcher, sink, registry
    ):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": LINKERD_ISSUER_PEM,
            "issuer.crt": LINKERD_ISSUER_PEM,
        }
        await watcher.reconcile(SECRET)

        fetcher.fetch_secret_data.side_effect = NotFoundError(
            KIND_SECRET, SECRET.namespace, SECRET.name
        )
        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600
        assert sink.series(METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP) == {}
        assert sink.series(METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION) == {}
        assert (
            registry.get_sample_value(
                "pod_monitor_certificate_days_until_expiration", labels("ca.crt")
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_not_found_leaves_other_secrets(self, watcher, fetcher, sink):
        other = ObjectRef(namespace="linkerd", name="other", kind=KIND_SECRET)
        fetcher.fetch_secret_data.return_value = {"ca.crt": LINKERD_ISSUER_PEM}
        await watcher.reconcile(other)

        fetcher.fetch_secret_data.side_effect = NotFoundError(
            KIND_SECRET, SECRET.namespace, SECRET.name
        )
        await watcher.reconcile(SECRET)

        assert sink.value(
            METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP, labels("ca.crt", other)
        ) is not None

    @pytest.mark.asyncio
    async def test_not_found_without_series_is_noop(self, watcher, fetcher):
        fetcher.fetch_secret_data.side_effect = NotFoundError(
            KIND_SECRET, SECRET.namespace, SECRET.name
        )

        result = await watcher.reconcile(SECRET)

        assert result.requeue_after == 3600


class TestFailures:
    """Failures that are surfaced to the caller."""

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, watcher, fetcher, sink):
        fetcher.fetch_secret_data.return_value = {"ca.crt": LINKERD_ISSUER_PEM}
        await watcher.reconcile(SECRET)

        fetcher.fetch_secret_data.side_effect = FetchError(
            KIND_SECRET, SECRET.namespace, SECRET.name, "HTTP 500"
        )
        with pytest.raises(FetchError):
            await watcher.reconcile(SECRET)

        # Previously published values are not touched
        assert sink.value(
            METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION, labels("ca.crt")
        ) is not None

    @pytest.mark.asyncio
    async def test_expired_deadline_abandons_remaining_slots(
        self, watcher, fetcher, sink
    ):
        fetcher.fetch_secret_data.return_value = {
            "ca.crt": LINKERD_ISSUER_PEM,
            "issuer.crt": LINKERD_ISSUER_PEM,
        }

        with pytest.raises(ReconciliationTimeoutError) as exc_info:
            await watcher.reconcile(SECRET, deadline=time.monotonic() - 1)

        assert exc_info.value.processed == 0
        assert exc_info.value.remaining == 2
        assert exc_info.value.retryable is True
        assert sink.series(METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP) == {}


class TestCheckCertificate:
    """Tests for check_certificate() and publish()."""

    def test_returns_fact(self, watcher):
        material = CertificateKeyMaterial(
            namespace="linkerd",
            secret_name="linkerd-identity-issuer",
            cert_type="ca.crt",
            raw_bytes=LINKERD_ISSUER_PEM,
        )

        fact = watcher.check_certificate(material)

        assert fact is not None
        assert fact.expires_at == LINKERD_ISSUER_NOT_AFTER
        assert fact.labels == labels("ca.crt")

    def test_parse_error_returns_none(self, watcher, collector):
        material = CertificateKeyMaterial(
            namespace="linkerd",
            secret_name="linkerd-identity-issuer",
            cert_type="ca.crt",
            raw_bytes=b"garbage",
        )

        assert watcher.check_certificate(material) is None
        collector.record_certificate_error.assert_called_once()

    def test_clear_returns_removed_count(self, watcher, fetcher):
        material = CertificateKeyMaterial(
            namespace="linkerd",
            secret_name="linkerd-identity-issuer",
            cert_type="ca.crt",
            raw_bytes=LINKERD_ISSUER_PEM,
        )
        watcher.check_certificate(material)

        assert watcher.clear("linkerd", "linkerd-identity-issuer") == 2
        assert watcher.clear("linkerd", "linkerd-identity-issuer") == 0
