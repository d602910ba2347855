"""
Unit tests for MetricsCollector methods in observability/metrics.py.

Tests the individual methods of MetricsCollector to verify they call the
correct Prometheus metric objects with the correct label values.
"""

from unittest.mock import MagicMock, patch

import pytest

from pod_monitor_operator.errors import FetchError
from pod_monitor_operator.observability.metrics import MetricsCollector

METRICS = "pod_monitor_operator.observability.metrics"


@pytest.fixture
def collector():
    """Create a MetricsCollector with the registry init patched out."""
    with patch(
        "pod_monitor_operator.observability.metrics.get_metrics_registry",
        return_value=MagicMock(),
    ):
        return MetricsCollector()


class TestTrackReconciliation:
    """Test the reconciliation tracking context manager."""

    @pytest.mark.asyncio
    async def test_success(self, collector):
        with (
            patch(f"{METRICS}.RECONCILIATION_TOTAL") as mock_total,
            patch(f"{METRICS}.RECONCILIATION_DURATION") as mock_duration,
        ):
            async with collector.track_reconciliation("pod"):
                pass

        mock_total.labels.assert_called_with(resource_type="pod", result="success")
        mock_total.labels().inc.assert_called_once()
        mock_duration.labels.assert_called_with(resource_type="pod")
        mock_duration.labels().observe.assert_called_once()

    @pytest.mark.asyncio
    async def test_error_is_counted_and_reraised(self, collector):
        with (
            patch(f"{METRICS}.RECONCILIATION_TOTAL") as mock_total,
            patch(f"{METRICS}.RECONCILIATION_ERRORS") as mock_errors,
            pytest.raises(FetchError),
        ):
            async with collector.track_reconciliation("secret"):
                raise FetchError("Secret", "linkerd", "issuer", "HTTP 500")

        mock_errors.labels.assert_called_with(
            resource_type="secret", error_type="FetchError", retryable="true"
        )
        mock_total.labels.assert_called_with(resource_type="secret", result="error")

    @pytest.mark.asyncio
    async def test_plain_exception_is_not_retryable(self, collector):
        with (
            patch(f"{METRICS}.RECONCILIATION_ERRORS") as mock_errors,
            pytest.raises(RuntimeError),
        ):
            async with collector.track_reconciliation("pod"):
                raise RuntimeError("boom")

        mock_errors.labels.assert_called_with(
            resource_type="pod", error_type="RuntimeError", retryable="false"
        )


class TestDomainCounters:
    """Test restart and certificate self-metrics."""

    @patch("pod_monitor_operator.observability.metrics.RESTART_EVENTS_TOTAL")
    def test_record_restart_event(self, mock_restarts, collector):
        collector.record_restart_event("default")
        mock_restarts.labels.assert_called_with(namespace="default")
        mock_restarts.labels().inc.assert_called_once()

    @patch("pod_monitor_operator.observability.metrics.TRACKED_CONTAINERS")
    def test_update_tracked_containers(self, mock_tracked, collector):
        collector.update_tracked_containers(7)
        mock_tracked.set.assert_called_with(7)

    @patch("pod_monitor_operator.observability.metrics.CERTIFICATE_EVALUATION_ERRORS")
    def test_record_certificate_error(self, mock_errors, collector):
        collector.record_certificate_error("ca.crt", "CertificateParseError")
        mock_errors.labels.assert_called_with(
            cert_type="ca.crt", error_type="CertificateParseError"
        )
        mock_errors.labels().inc.assert_called_once()
