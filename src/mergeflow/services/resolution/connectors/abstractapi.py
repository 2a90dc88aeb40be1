"""AbstractAPI email validation connector.

Scores an email address by AbstractAPI's ``quality_score`` (0.0 to 1.0,
returned as a decimal string). The boolean checks come back wrapped as
``{"value": bool, "text": "TRUE"}`` and are flattened into details.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mergeflow.services.resolution.connectors._http import get_json
from mergeflow.services.resolution.errors import ValidationSignalError
from mergeflow.services.resolution.models import ValidationResult

logger = logging.getLogger(__name__)

ABSTRACTAPI_PROVIDER_ID = "abstractapi"
ABSTRACTAPI_EMAIL_URL = "https://emailvalidation.abstractapi.com/v1/"
ABSTRACTAPI_FLAG_FIELDS = (
    "is_valid_format",
    "is_free_email",
    "is_disposable_email",
    "is_role_email",
    "is_catchall_email",
    "is_mx_found",
    "is_smtp_valid",
)


class AbstractApiEmailValidator:
    """Validation signal backed by AbstractAPI email validation."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = ABSTRACTAPI_EMAIL_URL,
        timeout_seconds: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("AbstractAPI api_key is required")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    @property
    def provider_id(self) -> str:
        return ABSTRACTAPI_PROVIDER_ID

    def validate(self, attribute: str) -> ValidationResult:
        """Validate an email address.

        Raises:
            ValidationSignalError: If the request fails or the body is unusable.
        """
        data = get_json(
            provider_name="AbstractAPI",
            url=self._base_url,
            params={"api_key": self._api_key, "email": attribute},
            timeout_seconds=self._timeout_seconds,
            http_client=self._http_client,
        )
        return ValidationResult(
            provider_id=ABSTRACTAPI_PROVIDER_ID,
            quality_score=_parse_score(data.get("quality_score")),
            details=self._normalize_details(data),
        )

    @staticmethod
    def _normalize_details(data: dict[str, Any]) -> dict[str, Any]:
        details: dict[str, Any] = {
            "autocorrect": data.get("autocorrect") or None,
            "deliverability": data.get("deliverability"),
            "email": data.get("email"),
        }
        for name in ABSTRACTAPI_FLAG_FIELDS:
            wrapped = data.get(name)
            details[name] = wrapped.get("value") if isinstance(wrapped, dict) else None
        return details


def _parse_score(raw: Any) -> float | None:
    """Parse quality_score, which AbstractAPI sends as a string like "0.80"."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationSignalError(f"AbstractAPI quality_score is not numeric: {raw!r}")
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationSignalError(f"AbstractAPI quality_score is not numeric: {raw!r}") from exc
