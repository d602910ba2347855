"""
Operator error hierarchy with categorization and retry logic.

This module defines the error types used throughout the pod monitor operator,
providing clear categorization and integration with kopf's retry mechanisms.

Three families exist:
- OperatorError subclasses are surfaced to the caller and may be retried
- NotFoundError is not a failure; it triggers cleanup paths
- CertificateError subclasses are local to one certificate slot and are
  logged and absorbed by the certificate watcher
"""

import kopf

from pod_monitor_operator.constants import NON_RETRYABLE_API_REASONS


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = 30,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (fetch, timeout)
            retryable: Whether the operation should be retried
            delay: Suggested retry delay in seconds
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """Convert to appropriate kopf exception type."""
        if self.retryable:
            return kopf.TemporaryError(str(self), delay=self.delay)
        else:
            return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class FetchError(OperatorError):
    """Looking up current object state failed for a reason other than not-found."""

    def __init__(
        self,
        kind: str,
        namespace: str,
        name: str,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.reason = reason
        self.status = status

        detail = f"Failed to fetch {kind} {namespace}/{name}: {message}"
        if reason:
            detail = f"{detail} (reason: {reason})"

        super().__init__(
            message=detail,
            category="fetch",
            retryable=reason not in NON_RETRYABLE_API_REASONS,
            delay=10,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )


class ReconciliationTimeoutError(OperatorError):
    """A reconciliation ran past its deadline and abandoned remaining work."""

    def __init__(self, subject: str, processed: int, remaining: int):
        self.subject = subject
        self.processed = processed
        self.remaining = remaining
        super().__init__(
            message=(
                f"Reconciliation of {subject} exceeded its deadline after "
                f"{processed} item(s); {remaining} item(s) not evaluated"
            ),
            category="timeout",
            retryable=True,
            delay=5,
        )


class NotFoundError(Exception):
    """The requested object does not exist (any more)."""

    def __init__(self, kind: str, namespace: str, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} not found")


class CertificateError(Exception):
    """Base class for failures evaluating a single certificate payload."""


class MalformedInputError(CertificateError):
    """The payload does not contain a decodable PEM block."""


class CertificateParseError(CertificateError):
    """The PEM block does not hold a valid X.509 certificate."""
