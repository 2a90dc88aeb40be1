"""Runtime configuration for mergeflow.

Credentials and tuning knobs are read once from environment variables into
an immutable ResolutionConfig, which is then passed to each collaborator at
construction time.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Final

logger = logging.getLogger(__name__)

ENV_HUBSPOT_ACCESS_TOKEN: Final[str] = "MERGEFLOW_HUBSPOT_ACCESS_TOKEN"
ENV_HUBSPOT_BASE_URL: Final[str] = "MERGEFLOW_HUBSPOT_BASE_URL"
ENV_DEDUP_PROPERTY: Final[str] = "MERGEFLOW_DEDUP_PROPERTY"
ENV_SECONDARY_PROPERTY: Final[str] = "MERGEFLOW_SECONDARY_PROPERTY"
ENV_VALIDATION_PROVIDER: Final[str] = "MERGEFLOW_VALIDATION_PROVIDER"
ENV_ABSTRACTAPI_KEY: Final[str] = "MERGEFLOW_ABSTRACTAPI_KEY"
ENV_KICKBOX_API_KEY: Final[str] = "MERGEFLOW_KICKBOX_API_KEY"
ENV_HTTP_TIMEOUT_SECONDS: Final[str] = "MERGEFLOW_HTTP_TIMEOUT_SECONDS"
ENV_SCORING_CONCURRENCY: Final[str] = "MERGEFLOW_SCORING_CONCURRENCY"
ENV_AUDIT_SINK: Final[str] = "MERGEFLOW_AUDIT_SINK"
ENV_AUDIT_LOG_PATH: Final[str] = "MERGEFLOW_AUDIT_LOG_PATH"
ENV_DATADOG_API_KEY: Final[str] = "MERGEFLOW_DATADOG_API_KEY"
ENV_DATADOG_INTAKE_URL: Final[str] = "MERGEFLOW_DATADOG_INTAKE_URL"

DEFAULT_HUBSPOT_BASE_URL: Final[str] = "https://api.hubapi.com"
DEFAULT_DEDUP_PROPERTY: Final[str] = "phone"
DEFAULT_SECONDARY_PROPERTY: Final[str] = "email"
DEFAULT_VALIDATION_PROVIDER: Final[str] = "abstractapi"
DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_SCORING_CONCURRENCY: Final[int] = 4
DEFAULT_AUDIT_SINK: Final[str] = "none"
DEFAULT_AUDIT_LOG_PATH: Final[str] = "./var/audit/resolution_events.jsonl"
DEFAULT_DATADOG_INTAKE_URL: Final[str] = "https://http-intake.logs.datadoghq.eu/v1/input"

VALIDATION_PROVIDERS: Final[frozenset[str]] = frozenset({"abstractapi", "kickbox"})
AUDIT_SINKS: Final[frozenset[str]] = frozenset({"none", "jsonl", "datadog"})


class ConfigError(Exception):
    """Raised when mergeflow configuration is invalid."""


@dataclass(frozen=True)
class ResolutionConfig:
    """Resolution run configuration (immutable).

    Attributes:
        hubspot_access_token: Private app token for the CRM record store.
        hubspot_base_url: CRM API base URL.
        dedup_property: Record property used as the dedup key.
        secondary_property: Record property handed to the validation signal.
        validation_provider: Provider id of the validation signal.
        abstractapi_key: API key for AbstractAPI email validation.
        kickbox_api_key: API key for Kickbox email verification.
        http_timeout_seconds: Timeout applied to every outbound call.
        scoring_concurrency: Maximum validation calls in flight per run.
        audit_sink: Where lifecycle events go: none, jsonl or datadog.
        audit_log_path: JSONL file path for the jsonl sink.
        datadog_api_key: API key for the datadog sink.
        datadog_intake_url: Datadog log intake URL.
    """

    hubspot_access_token: str = field(repr=False)
    hubspot_base_url: str = DEFAULT_HUBSPOT_BASE_URL
    dedup_property: str = DEFAULT_DEDUP_PROPERTY
    secondary_property: str = DEFAULT_SECONDARY_PROPERTY
    validation_provider: str = DEFAULT_VALIDATION_PROVIDER
    abstractapi_key: str | None = field(default=None, repr=False)
    kickbox_api_key: str | None = field(default=None, repr=False)
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    scoring_concurrency: int = DEFAULT_SCORING_CONCURRENCY
    audit_sink: str = DEFAULT_AUDIT_SINK
    audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    datadog_api_key: str | None = field(default=None, repr=False)
    datadog_intake_url: str = DEFAULT_DATADOG_INTAKE_URL

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.hubspot_access_token:
            raise ConfigError(f"{ENV_HUBSPOT_ACCESS_TOKEN} is required")
        if not self.dedup_property or not self.secondary_property:
            raise ConfigError("dedup_property and secondary_property must be non-empty")
        if self.validation_provider not in VALIDATION_PROVIDERS:
            raise ConfigError(
                f"{ENV_VALIDATION_PROVIDER} must be one of {sorted(VALIDATION_PROVIDERS)}, "
                f"got '{self.validation_provider}'"
            )
        if self.validation_provider == "abstractapi" and not self.abstractapi_key:
            raise ConfigError(f"{ENV_ABSTRACTAPI_KEY} is required for the abstractapi provider")
        if self.validation_provider == "kickbox" and not self.kickbox_api_key:
            raise ConfigError(f"{ENV_KICKBOX_API_KEY} is required for the kickbox provider")
        if self.http_timeout_seconds <= 0:
            raise ConfigError(
                f"{ENV_HTTP_TIMEOUT_SECONDS} must be positive, got {self.http_timeout_seconds}"
            )
        if self.scoring_concurrency <= 0:
            raise ConfigError(
                f"{ENV_SCORING_CONCURRENCY} must be a positive integer, "
                f"got {self.scoring_concurrency}"
            )
        if self.audit_sink not in AUDIT_SINKS:
            raise ConfigError(
                f"{ENV_AUDIT_SINK} must be one of {sorted(AUDIT_SINKS)}, got '{self.audit_sink}'"
            )
        if self.audit_sink == "datadog" and not self.datadog_api_key:
            raise ConfigError(f"{ENV_DATADOG_API_KEY} is required for the datadog audit sink")


def _get_env_str(env_var: str, default: str = "") -> str:
    return os.environ.get(env_var, default).strip() or default


def _get_env_optional(env_var: str) -> str | None:
    raw = os.environ.get(env_var, "").strip()
    return raw or None


def _parse_positive_int(env_var: str, default: int) -> int:
    """Parse a positive integer from an environment variable.

    Raises:
        ConfigError: If value is set but not a positive integer.
    """
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e

    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive integer, got {value}")
    return value


def _parse_positive_float(env_var: str, default: float) -> float:
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default

    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive number, got '{raw}'") from e

    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive number, got {value}")
    return value


def load_resolution_config() -> ResolutionConfig:
    """Load resolution configuration from environment variables.

    Returns:
        ResolutionConfig with validated values.

    Raises:
        ConfigError: If a required value is missing or any value is invalid.
    """
    return ResolutionConfig(
        hubspot_access_token=_get_env_str(ENV_HUBSPOT_ACCESS_TOKEN),
        hubspot_base_url=_get_env_str(ENV_HUBSPOT_BASE_URL, DEFAULT_HUBSPOT_BASE_URL),
        dedup_property=_get_env_str(ENV_DEDUP_PROPERTY, DEFAULT_DEDUP_PROPERTY),
        secondary_property=_get_env_str(ENV_SECONDARY_PROPERTY, DEFAULT_SECONDARY_PROPERTY),
        validation_provider=_get_env_str(
            ENV_VALIDATION_PROVIDER, DEFAULT_VALIDATION_PROVIDER
        ).lower(),
        abstractapi_key=_get_env_optional(ENV_ABSTRACTAPI_KEY),
        kickbox_api_key=_get_env_optional(ENV_KICKBOX_API_KEY),
        http_timeout_seconds=_parse_positive_float(
            ENV_HTTP_TIMEOUT_SECONDS, DEFAULT_HTTP_TIMEOUT_SECONDS
        ),
        scoring_concurrency=_parse_positive_int(
            ENV_SCORING_CONCURRENCY, DEFAULT_SCORING_CONCURRENCY
        ),
        audit_sink=_get_env_str(ENV_AUDIT_SINK, DEFAULT_AUDIT_SINK).lower(),
        audit_log_path=_get_env_str(ENV_AUDIT_LOG_PATH, DEFAULT_AUDIT_LOG_PATH),
        datadog_api_key=_get_env_optional(ENV_DATADOG_API_KEY),
        datadog_intake_url=_get_env_str(ENV_DATADOG_INTAKE_URL, DEFAULT_DATADOG_INTAKE_URL),
    )
