"""Shared GET helper for validation provider connectors."""

from __future__ import annotations

from typing import Any

import httpx

from mergeflow.services.resolution.errors import ValidationSignalError


def get_json(
    *,
    provider_name: str,
    url: str,
    params: dict[str, str],
    timeout_seconds: float,
    http_client: httpx.Client | None,
) -> dict[str, Any]:
    """GET a JSON object from a validation provider.

    Uses the injected client when given, otherwise a short-lived client
    with the configured timeout. A timeout is reported like any other
    transport failure.

    Raises:
        ValidationSignalError: On network errors, non-2xx responses, or a
            body that is not a JSON object.
    """
    client = http_client
    should_close = False
    if client is None:
        client = httpx.Client(timeout=timeout_seconds)
        should_close = True

    try:
        response = client.get(url, params=params, headers={"Accept": "application/json"})
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as exc:
        raise ValidationSignalError(
            f"{provider_name} request failed: HTTP {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.RequestError as exc:
        # Never echo the request URL: it carries the api key
        raise ValidationSignalError(
            f"{provider_name} request failed: {type(exc).__name__}"
        ) from exc
    except ValueError as exc:
        raise ValidationSignalError(f"{provider_name} returned invalid JSON") from exc
    finally:
        if should_close:
            client.close()

    if not isinstance(data, dict):
        raise ValidationSignalError(f"{provider_name} response is not a JSON object")
    return data
