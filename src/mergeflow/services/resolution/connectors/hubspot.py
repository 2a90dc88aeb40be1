"""HubSpot CRM record store connector.

Searches contacts by an exact property match (CRM v3 search API) and merges
contacts with the legacy merge-vids endpoint. Authenticates with a private
app access token (Bearer).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from mergeflow.services.resolution.errors import RecordStoreError
from mergeflow.services.resolution.models import RawCandidate

logger = logging.getLogger(__name__)

HUBSPOT_BASE_URL = "https://api.hubapi.com"
HUBSPOT_SEARCH_PATH = "/crm/v3/objects/contacts/search"
HUBSPOT_MERGE_PATH = "/contacts/v1/contact/merge-vids/{target_id}"
HUBSPOT_CREATED_PROPERTY = "createdate"
HUBSPOT_SEARCH_PAGE_SIZE = 100
HUBSPOT_MAX_SEARCH_PAGES = 100


class HubSpotRecordStore:
    """Record store backed by HubSpot contacts.

    Implements the RecordStore protocol: ``search`` and ``merge``.
    """

    def __init__(
        self,
        *,
        access_token: str,
        base_url: str = HUBSPOT_BASE_URL,
        secondary_property: str = "email",
        timeout_seconds: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the HubSpot record store.

        Args:
            access_token: Private app access token.
            base_url: API base URL.
            secondary_property: Contact property returned as the secondary attribute.
            timeout_seconds: Per-request timeout.
            http_client: Optional httpx.Client for dependency injection (testing).
        """
        if not access_token:
            raise ValueError("HubSpot access_token is required")
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._secondary_property = secondary_property
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    def search(self, key: str, *, attribute: str) -> list[RawCandidate]:
        """Return every contact whose ``attribute`` property equals ``key``.

        Follows ``paging.next.after`` cursors until the result set is exhausted.

        Raises:
            RecordStoreError: On network errors, non-2xx responses, or a
                payload that does not match the search response shape.
        """
        url = f"{self._base_url}{HUBSPOT_SEARCH_PATH}"
        candidates: list[RawCandidate] = []
        after: str | None = None

        for _ in range(HUBSPOT_MAX_SEARCH_PAGES):
            body: dict[str, Any] = {
                "filterGroups": [
                    {"filters": [{"propertyName": attribute, "operator": "EQ", "value": key}]}
                ],
                "properties": [self._secondary_property, HUBSPOT_CREATED_PROPERTY],
                "limit": HUBSPOT_SEARCH_PAGE_SIZE,
            }
            if after is not None:
                body["after"] = after

            data = self._post(url, body)
            candidates.extend(self._parse_results(data))

            after = self._next_cursor(data)
            if after is None:
                return candidates

        raise RecordStoreError(
            f"HubSpot search for {attribute} exceeded {HUBSPOT_MAX_SEARCH_PAGES} pages"
        )

    def merge(self, source_id: str, target_id: str) -> None:
        """Merge the source contact into the target contact.

        Raises:
            RecordStoreError: If the merge request fails.
        """
        url = f"{self._base_url}{HUBSPOT_MERGE_PATH.format(target_id=target_id)}"
        self._post(url, {"vidToMerge": _as_vid(source_id)}, expect_json=False)

    def _post(
        self,
        url: str,
        body: dict[str, Any],
        *,
        expect_json: bool = True,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

        client = self._http_client
        should_close = False
        if client is None:
            client = httpx.Client(timeout=self._timeout_seconds)
            should_close = True

        try:
            response = client.post(url, json=body, headers=headers)
            response.raise_for_status()
            if not expect_json:
                return {}
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = _error_message(exc.response)
            raise RecordStoreError(
                f"HubSpot request failed: HTTP {status} {detail}".rstrip(),
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            raise RecordStoreError(f"HubSpot request failed: {exc!r}") from exc
        except ValueError as exc:
            raise RecordStoreError(f"HubSpot returned invalid JSON: {exc}") from exc
        finally:
            if should_close:
                client.close()

        if not isinstance(data, dict):
            raise RecordStoreError("HubSpot response is not a JSON object")
        return data

    def _parse_results(self, data: dict[str, Any]) -> list[RawCandidate]:
        results = data.get("results")
        if not isinstance(results, list):
            raise RecordStoreError("HubSpot search response has no results list")

        parsed: list[RawCandidate] = []
        for item in results:
            if not isinstance(item, dict):
                raise RecordStoreError("HubSpot search result is not an object")
            properties = item.get("properties") or {}
            created = properties.get(HUBSPOT_CREATED_PROPERTY) or item.get("createdAt")
            try:
                parsed.append(
                    RawCandidate(
                        id=item.get("id"),
                        secondary_attribute=properties.get(self._secondary_property),
                        created_at=created,
                    )
                )
            except ValidationError as exc:
                raise RecordStoreError(
                    f"HubSpot contact {item.get('id')!r} is malformed: {exc.error_count()} error(s)"
                ) from exc
        return parsed

    @staticmethod
    def _next_cursor(data: dict[str, Any]) -> str | None:
        paging = data.get("paging") or {}
        after = (paging.get("next") or {}).get("after")
        return str(after) if after else None


def _as_vid(record_id: str) -> int | str:
    """Legacy endpoints expect numeric vids; pass non-numeric ids through."""
    return int(record_id) if record_id.isdigit() else record_id


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        return str(payload.get("message", ""))
    return ""
