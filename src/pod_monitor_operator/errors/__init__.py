"""
Error handling module for the pod monitor operator.

This module provides an error hierarchy that integrates with kopf
and separates retryable failures from locally absorbed ones.
"""

from .operator_errors import (
    CertificateError,
    CertificateParseError,
    FetchError,
    MalformedInputError,
    NotFoundError,
    OperatorError,
    ReconciliationTimeoutError,
)

__all__ = [
    "OperatorError",
    "FetchError",
    "ReconciliationTimeoutError",
    "NotFoundError",
    "CertificateError",
    "MalformedInputError",
    "CertificateParseError",
]
