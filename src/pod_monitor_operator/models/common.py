"""
Common models shared across the reconciliation paths.

This module defines the subject of a change notification and the
outcome of a single reconciliation.
"""

from pydantic import BaseModel, Field

from pod_monitor_operator.constants import KIND_POD


class ObjectRef(BaseModel):
    """Subject of an "object changed" notification."""

    model_config = {"frozen": True}

    namespace: str = Field(..., description="Namespace of the object")
    name: str = Field(..., description="Name of the object")
    kind: str = Field(KIND_POD, description="Kind of the object (Pod, Secret)")

    def __str__(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"


class ReconcileResult(BaseModel):
    """Outcome of one reconciliation pass."""

    model_config = {"frozen": True}

    requeue_after: float | None = Field(
        None, description="Seconds until the subject should be reconciled again"
    )
