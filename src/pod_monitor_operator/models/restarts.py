"""
Container restart models.

A container slot is named by its identity; every poll of pod state yields
one RestartObservation per container, optionally carrying the snapshot of
the container's last termination.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ContainerIdentity(BaseModel):
    """{namespace, parent, container} triple naming a trackable container slot."""

    model_config = {"frozen": True}

    namespace: str = Field(..., description="Namespace of the parent pod")
    parent_name: str = Field(..., description="Name of the parent pod")
    container_name: str = Field(..., description="Name of the container")

    def belongs_to(self, namespace: str, parent_name: str) -> bool:
        """Check whether this slot lives inside the given parent object."""
        return self.namespace == namespace and self.parent_name == parent_name

    def __str__(self) -> str:
        return f"{self.namespace}/{self.parent_name}/{self.container_name}"


class TerminationSnapshot(BaseModel):
    """Point-in-time record of a container's last exit."""

    model_config = {"frozen": True}

    reason: str = Field("", description="Termination reason, e.g. OOMKilled")
    exit_code: int = Field(0, description="Exit code of the terminated process")
    finished_at: datetime | None = Field(
        None, description="When the container finished"
    )

    @property
    def finished_at_unix(self) -> float:
        """Finish time in Unix seconds, 0 when unknown."""
        if self.finished_at is None:
            return 0.0
        return float(int(self.finished_at.timestamp()))


class RestartObservation(BaseModel):
    """Restart counter of one container, as reported on a single poll."""

    model_config = {"frozen": True}

    identity: ContainerIdentity
    restart_count: int = Field(..., ge=0, description="Monotonic restart counter")
    termination: TerminationSnapshot | None = Field(
        None, description="Last termination snapshot, absent while it lags"
    )

    @property
    def has_termination_snapshot(self) -> bool:
        return self.termination is not None
