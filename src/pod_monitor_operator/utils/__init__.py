"""
Utils package - Utility modules for pod monitor operator functionality.

Contains helper modules for:
- Kubernetes API access and object conversion
- Retrying transient reconciliation failures
- Handler logging
"""

from pod_monitor_operator.utils.kubernetes import (
    KubernetesObjectFetcher,
    ObjectFetcher,
    get_kubernetes_client,
)
from pod_monitor_operator.utils.retry import retry_reconcile

__all__ = [
    "KubernetesObjectFetcher",
    "ObjectFetcher",
    "get_kubernetes_client",
    "retry_reconcile",
]
