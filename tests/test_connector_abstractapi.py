"""Tests for the AbstractAPI email validation connector.

Uses httpx.MockTransport for deterministic testing with no live network calls.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from mergeflow.services.resolution.connectors.abstractapi import (
    ABSTRACTAPI_PROVIDER_ID,
    AbstractApiEmailValidator,
)
from mergeflow.services.resolution.errors import ValidationSignalError

SAMPLE_RESPONSE: dict[str, Any] = {
    "email": "jane@example.com",
    "autocorrect": "",
    "deliverability": "DELIVERABLE",
    "quality_score": "0.80",
    "is_valid_format": {"value": True, "text": "TRUE"},
    "is_free_email": {"value": False, "text": "FALSE"},
    "is_disposable_email": {"value": False, "text": "FALSE"},
    "is_role_email": {"value": False, "text": "FALSE"},
    "is_catchall_email": {"value": False, "text": "FALSE"},
    "is_mx_found": {"value": True, "text": "TRUE"},
    "is_smtp_valid": {"value": True, "text": "TRUE"},
}


def _make_client(
    status_code: int = 200,
    response_json: Any = None,
    raise_error: bool = False,
    requests: list[httpx.Request] | None = None,
) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if raise_error:
            raise httpx.ConnectError("Connection refused")
        body = response_json if response_json is not None else SAMPLE_RESPONSE
        return httpx.Response(status_code=status_code, json=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


def _validator(client: httpx.Client) -> AbstractApiEmailValidator:
    return AbstractApiEmailValidator(api_key="abs-key", http_client=client)


class TestAbstractApiSuccess:
    def test_provider_id(self) -> None:
        assert _validator(_make_client()).provider_id == ABSTRACTAPI_PROVIDER_ID

    def test_string_quality_score_parsed(self) -> None:
        result = _validator(_make_client()).validate("jane@example.com")
        assert result.quality_score == pytest.approx(0.8)
        assert result.provider_id == ABSTRACTAPI_PROVIDER_ID

    def test_numeric_quality_score_parsed(self) -> None:
        body = {**SAMPLE_RESPONSE, "quality_score": 0.55}
        assert _validator(_make_client(response_json=body)).validate("x").quality_score == 0.55

    def test_details_flattened(self) -> None:
        details = _validator(_make_client()).validate("jane@example.com").details
        assert details["deliverability"] == "DELIVERABLE"
        assert details["is_valid_format"] is True
        assert details["is_free_email"] is False
        assert details["is_smtp_valid"] is True
        assert details["autocorrect"] is None

    def test_request_params(self) -> None:
        requests: list[httpx.Request] = []
        _validator(_make_client(requests=requests)).validate("jane+tag@example.com")

        params = requests[0].url.params
        assert params["api_key"] == "abs-key"
        assert params["email"] == "jane+tag@example.com"

    def test_null_score_is_none(self) -> None:
        body = {**SAMPLE_RESPONSE, "quality_score": None}
        assert _validator(_make_client(response_json=body)).validate("x").quality_score is None


class TestAbstractApiFailures:
    def test_network_error(self) -> None:
        with pytest.raises(ValidationSignalError, match="ConnectError"):
            _validator(_make_client(raise_error=True)).validate("x")

    def test_http_error_has_status(self) -> None:
        with pytest.raises(ValidationSignalError) as exc_info:
            _validator(_make_client(status_code=429, response_json={})).validate("x")
        assert exc_info.value.status_code == 429

    def test_error_message_does_not_leak_key(self) -> None:
        with pytest.raises(ValidationSignalError) as exc_info:
            _validator(_make_client(raise_error=True)).validate("x")
        assert "abs-key" not in str(exc_info.value)

    def test_non_numeric_score(self) -> None:
        body = {**SAMPLE_RESPONSE, "quality_score": "high"}
        with pytest.raises(ValidationSignalError, match="not numeric"):
            _validator(_make_client(response_json=body)).validate("x")

    def test_non_object_body(self) -> None:
        with pytest.raises(ValidationSignalError, match="not a JSON object"):
            _validator(_make_client(response_json=[1, 2])).validate("x")


def test_api_key_required() -> None:
    with pytest.raises(ValueError):
        AbstractApiEmailValidator(api_key="")
