"""
Kubernetes utilities for the pod monitor operator.

This module provides helper functions for interacting with the Kubernetes API:
- Kubernetes client management and configuration
- Fetching current pod and secret state as domain models
- Translating API failures into NotFoundError / FetchError
"""

import asyncio
import base64
import logging
from collections.abc import Callable
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as TransportError

from pod_monitor_operator.constants import KIND_POD, KIND_SECRET
from pod_monitor_operator.errors import FetchError, NotFoundError
from pod_monitor_operator.models import (
    ContainerIdentity,
    RestartObservation,
    TerminationSnapshot,
)

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    This function handles both in-cluster and local development configurations.

    Returns:
        Configured Kubernetes API client
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


class ObjectFetcher(Protocol):
    """Source of current object state for reconciliations."""

    async def fetch_restart_observations(
        self, namespace: str, name: str
    ) -> list[RestartObservation]: ...

    async def fetch_pod_uid(self, namespace: str, name: str) -> str: ...

    async def fetch_secret_data(self, namespace: str, name: str) -> dict[str, bytes]: ...


def pod_to_observations(pod: client.V1Pod) -> list[RestartObservation]:
    """
    Convert a pod's container statuses into restart observations.

    Args:
        pod: Pod as returned by the API

    Returns:
        One observation per regular container status
    """
    namespace = pod.metadata.namespace
    pod_name = pod.metadata.name
    statuses = (pod.status.container_statuses if pod.status else None) or []

    observations = []
    for container_status in statuses:
        last_state = container_status.last_state
        terminated = last_state.terminated if last_state else None

        termination = None
        if terminated is not None:
            termination = TerminationSnapshot(
                reason=terminated.reason or "",
                exit_code=terminated.exit_code or 0,
                finished_at=terminated.finished_at,
            )

        observations.append(
            RestartObservation(
                identity=ContainerIdentity(
                    namespace=namespace,
                    parent_name=pod_name,
                    container_name=container_status.name,
                ),
                restart_count=container_status.restart_count or 0,
                termination=termination,
            )
        )

    return observations


def secret_to_data(secret: client.V1Secret) -> dict[str, bytes]:
    """Decode the base64 data section of a secret."""
    return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}


class KubernetesObjectFetcher:
    """ObjectFetcher backed by the Kubernetes CoreV1 API."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize the fetcher.

        Args:
            k8s_client: Kubernetes API client, will be created if not provided
        """
        self.k8s_client = k8s_client
        self._core_api: client.CoreV1Api | None = None

    @property
    def core_api(self) -> client.CoreV1Api:
        """Get or create the CoreV1 API."""
        if self._core_api is None:
            if self.k8s_client is None:
                self.k8s_client = get_kubernetes_client()
            self._core_api = client.CoreV1Api(self.k8s_client)
        return self._core_api

    async def _read(
        self, kind: str, namespace: str, name: str, reader: Callable[..., Any]
    ) -> Any:
        # The generated client is blocking; keep it off the event loop
        try:
            return await asyncio.to_thread(reader, name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, namespace, name) from e
            logger.error(f"Unable to fetch {kind} {namespace}/{name}: {e.reason}")
            raise FetchError(
                kind,
                namespace,
                name,
                message=f"HTTP {e.status}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e
        except TransportError as e:
            logger.error(f"Unable to reach API server for {kind} {namespace}/{name}: {e}")
            raise FetchError(kind, namespace, name, message=str(e), cause=e) from e

    async def fetch_restart_observations(
        self, namespace: str, name: str
    ) -> list[RestartObservation]:
        """Fetch a pod and convert its container statuses."""
        pod = await self._read(
            KIND_POD, namespace, name, self.core_api.read_namespaced_pod
        )
        return pod_to_observations(pod)

    async def fetch_pod_uid(self, namespace: str, name: str) -> str:
        """Fetch the uid of the pod currently holding a name."""
        pod = await self._read(
            KIND_POD, namespace, name, self.core_api.read_namespaced_pod
        )
        return pod.metadata.uid

    async def fetch_secret_data(self, namespace: str, name: str) -> dict[str, bytes]:
        """Fetch a secret and decode its data."""
        secret = await self._read(
            KIND_SECRET, namespace, name, self.core_api.read_namespaced_secret
        )
        return secret_to_data(secret)
