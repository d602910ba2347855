"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pod_monitor_operator.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CERTIFICATE_RECHECK_INTERVAL,
    DEFAULT_CERTIFICATE_SECRET_NAME,
    DEFAULT_CERTIFICATE_SECRET_NAMESPACE,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_METRICS_PREFIX,
    DEFAULT_RECONCILIATION_TIMEOUT,
)


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log health probe and metrics scrape requests",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )
    metrics_prefix: str = Field(
        default=DEFAULT_METRICS_PREFIX,
        validation_alias="METRICS_PREFIX",
        description="Prefix prepended to published metric families (empty = none)",
    )

    # Certificate target
    certificate_secret_namespace: str = Field(
        default=DEFAULT_CERTIFICATE_SECRET_NAMESPACE,
        validation_alias="CERTIFICATE_SECRET_NAMESPACE",
        description="Namespace of the secret holding the tracked certificates",
    )
    certificate_secret_name: str = Field(
        default=DEFAULT_CERTIFICATE_SECRET_NAME,
        validation_alias="CERTIFICATE_SECRET_NAME",
        description="Name of the secret holding the tracked certificates",
    )
    certificate_recheck_interval_seconds: float = Field(
        default=float(DEFAULT_CERTIFICATE_RECHECK_INTERVAL),
        gt=0,
        validation_alias="CERTIFICATE_RECHECK_INTERVAL_SECONDS",
        description="Interval between certificate re-evaluations without changes",
    )

    # Reconciliation behavior
    reconcile_timeout_seconds: float = Field(
        default=float(DEFAULT_RECONCILIATION_TIMEOUT),
        gt=0,
        validation_alias="RECONCILE_TIMEOUT_SECONDS",
        description="Deadline for a single reconciliation",
    )
    fetch_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        validation_alias="FETCH_MAX_RETRIES",
        description="Retries for a reconciliation that failed to fetch object state",
    )
    fetch_retry_initial_delay_seconds: float = Field(
        default=DEFAULT_INITIAL_DELAY,
        ge=0,
        validation_alias="FETCH_RETRY_INITIAL_DELAY_SECONDS",
        description="Delay before the first fetch retry",
    )
    fetch_retry_backoff_factor: float = Field(
        default=DEFAULT_BACKOFF_FACTOR,
        ge=1,
        validation_alias="FETCH_RETRY_BACKOFF_FACTOR",
        description="Multiplier applied to the delay after each fetch retry",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="TRACING_ENABLED",
        description="Enable OpenTelemetry tracing",
    )
    tracing_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="TRACING_ENDPOINT",
        description="OTLP gRPC collector endpoint",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        ge=0,
        le=1,
        validation_alias="TRACING_SAMPLE_RATE",
        description="Fraction of root spans to sample",
    )


# Global settings instance - initialized once at module import
settings = Settings()
