"""
Certificate models.

Key material is sourced fresh on every reconciliation and never cached;
expiry facts are derived from it and recomputed each cycle.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from pod_monitor_operator.constants import SECONDS_PER_DAY


class CertificateKeyMaterial(BaseModel):
    """Raw certificate payload stored under one slot of a secret."""

    model_config = {"frozen": True}

    namespace: str = Field(..., description="Namespace of the secret")
    secret_name: str = Field(..., description="Name of the secret")
    cert_type: str = Field(..., description="Slot key inside the secret, e.g. ca.crt")
    raw_bytes: bytes = Field(..., repr=False, description="Decoded slot payload")


class CertificateExpiryFact(BaseModel):
    """When the certificate in one slot expires."""

    model_config = {"frozen": True}

    namespace: str
    secret_name: str
    cert_type: str
    expires_at: datetime

    @property
    def labels(self) -> dict[str, str]:
        return {
            "namespace": self.namespace,
            "secret_name": self.secret_name,
            "cert_type": self.cert_type,
        }

    @property
    def expires_at_unix(self) -> float:
        return float(int(self.expires_at.timestamp()))

    def days_remaining(self, now: datetime) -> float:
        """
        Signed fractional days until expiry.

        Already-expired certificates yield a negative value.
        """
        return (self.expires_at - now).total_seconds() / SECONDS_PER_DAY
