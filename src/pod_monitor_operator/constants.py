"""
Constants used throughout the pod monitor operator.

This module defines all constant values used by the operator including:
- Metric family names and their label sets
- Recognized certificate slot keys
- Default intervals, timeouts and retry configuration
"""

import logging
import os

# Metric families published to the monitoring backend.
# The configured prefix is prepended as "<prefix>_<family>".
METRIC_CONTAINER_LAST_TERMINATION_INFO = "container_last_termination_info"
METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP = "certificate_expiration_timestamp_seconds"
METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION = "certificate_days_until_expiration"

TERMINATION_INFO_LABELS = ("namespace", "pod", "container", "reason", "exit_code")
CERTIFICATE_LABELS = ("namespace", "secret_name", "cert_type")

METRIC_FAMILIES: dict[str, tuple[str, tuple[str, ...]]] = {
    METRIC_CONTAINER_LAST_TERMINATION_INFO: (
        "Exposes information about the last termination of a container. "
        "The value is the unix timestamp of the termination.",
        TERMINATION_INFO_LABELS,
    ),
    METRIC_CERTIFICATE_EXPIRATION_TIMESTAMP: (
        "Unix timestamp in seconds indicating when the certificate will expire",
        CERTIFICATE_LABELS,
    ),
    METRIC_CERTIFICATE_DAYS_UNTIL_EXPIRATION: (
        "Number of days until the certificate expires",
        CERTIFICATE_LABELS,
    ),
}

DEFAULT_METRICS_PREFIX = "pod_monitor"

# Certificate slots accepted inside the watched secret.
# Two extensions for the two logical roles, plus the issuer's primary file.
CERTIFICATE_SLOT_KEYS = (
    "ca.crt",
    "issuer.crt",
    "ca.pem",
    "issuer.pem",
    "crt.pem",
)

# Default certificate target (Linkerd identity issuer)
DEFAULT_CERTIFICATE_SECRET_NAMESPACE = "linkerd"
DEFAULT_CERTIFICATE_SECRET_NAME = "linkerd-identity-issuer"

# Resource kinds routed by the dispatcher
KIND_POD = "Pod"
KIND_SECRET = "Secret"

# Timing (in seconds)
SECONDS_PER_DAY = 86400
DEFAULT_CERTIFICATE_RECHECK_INTERVAL = 3600  # 1 hour
DEFAULT_RECONCILIATION_TIMEOUT = 30

# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_INITIAL_DELAY = 1.0

# Kubernetes API reasons that will not succeed on retry
NON_RETRYABLE_API_REASONS = frozenset({"Forbidden", "Unauthorized", "Invalid"})

HANDLER_ENTRY_LOG_LEVEL = getattr(
    logging,
    os.getenv("HANDLER_ENTRY_LOG_LEVEL", "DEBUG").upper(),
    logging.DEBUG,
)
