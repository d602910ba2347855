"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- Change notifications and reconciliation results
- Container restart observations
- Certificate key material and derived expiry facts
"""

from .certificates import CertificateExpiryFact, CertificateKeyMaterial
from .common import ObjectRef, ReconcileResult
from .restarts import ContainerIdentity, RestartObservation, TerminationSnapshot

__all__ = [
    "ObjectRef",
    "ReconcileResult",
    "ContainerIdentity",
    "TerminationSnapshot",
    "RestartObservation",
    "CertificateKeyMaterial",
    "CertificateExpiryFact",
]
