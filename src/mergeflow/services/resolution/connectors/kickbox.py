"""Kickbox email verification connector.

Scores an email address by its Sendex score (0.0 to 1.0).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mergeflow.services.resolution.connectors._http import get_json
from mergeflow.services.resolution.errors import ValidationSignalError
from mergeflow.services.resolution.models import ValidationResult

logger = logging.getLogger(__name__)

KICKBOX_PROVIDER_ID = "kickbox"
KICKBOX_VERIFY_URL = "https://api.kickbox.com/v2/verify"
KICKBOX_DETAIL_FIELDS = (
    "result",
    "reason",
    "role",
    "free",
    "disposable",
    "accept_all",
    "did_you_mean",
    "success",
)


class KickboxEmailValidator:
    """Validation signal backed by Kickbox single verification."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = KICKBOX_VERIFY_URL,
        timeout_seconds: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Kickbox api_key is required")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    @property
    def provider_id(self) -> str:
        return KICKBOX_PROVIDER_ID

    def validate(self, attribute: str) -> ValidationResult:
        """Verify an email address.

        Kickbox answers HTTP 200 with ``success: false`` for account-level
        problems (bad key, no balance); those are treated as failures.

        Raises:
            ValidationSignalError: If the request fails or Kickbox reports failure.
        """
        data = get_json(
            provider_name="Kickbox",
            url=self._base_url,
            params={"email": attribute, "api_key": self._api_key},
            timeout_seconds=self._timeout_seconds,
            http_client=self._http_client,
        )
        if data.get("success") is False:
            raise ValidationSignalError(f"Kickbox verification failed: {data.get('message', '')}")

        return ValidationResult(
            provider_id=KICKBOX_PROVIDER_ID,
            quality_score=_parse_sendex(data.get("sendex")),
            details={name: data.get(name) for name in KICKBOX_DETAIL_FIELDS},
        )


def _parse_sendex(raw: Any) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int | float | str):
        raise ValidationSignalError(f"Kickbox sendex is not numeric: {raw!r}")
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationSignalError(f"Kickbox sendex is not numeric: {raw!r}") from exc
