"""Shared fixtures for unit tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from pod_monitor_operator.constants import KIND_SECRET
from pod_monitor_operator.models import ObjectRef
from pod_monitor_operator.observability.metrics import MetricSink


@pytest.fixture
def registry():
    """Fresh registry so gauge names never collide between tests."""
    return CollectorRegistry()


@pytest.fixture
def sink(registry):
    """MetricSink bound to a fresh registry."""
    return MetricSink(registry=registry)


@pytest.fixture
def fetcher():
    """ObjectFetcher fake; tests set return values and side effects."""
    fake = MagicMock()
    fake.fetch_restart_observations = AsyncMock(return_value=[])
    fake.fetch_pod_uid = AsyncMock(return_value="uid-web-0")
    fake.fetch_secret_data = AsyncMock(return_value={})
    return fake


@pytest.fixture
def collector():
    """Self-metrics collector fake."""
    return MagicMock()


@pytest.fixture
def certificate_target():
    """The certificate secret routed to the certificate path."""
    return ObjectRef(
        namespace="linkerd", name="linkerd-identity-issuer", kind=KIND_SECRET
    )
