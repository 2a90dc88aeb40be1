"""Audit event sinks for resolution run reporting.

All sinks implement the AuditSink protocol and raise AuditSinkError on
failure. Events are plain dicts serialized with sorted keys.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LOG_PATH = "./var/audit/resolution_events.jsonl"
DEFAULT_DATADOG_INTAKE_URL = "https://http-intake.logs.datadoghq.eu/v1/input"
DATADOG_SOURCE = "hubspot"
DATADOG_SERVICE = "hubspot_contact_merge"
DATADOG_TAGS = "hubspot, contact-merge, dedup"
ERROR_EVENT_SUFFIXES = (".aborted", ".merge_failed")


class AuditSinkError(Exception):
    """Raised when audit event emission fails."""


@runtime_checkable
class AuditSink(Protocol):
    """Protocol for audit event sinks."""

    def emit(self, event: dict[str, Any]) -> None:
        """Emit an audit event to the sink.

        Raises:
            AuditSinkError: If emission fails for any reason
        """
        ...


def _serialize(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Failed to serialize audit event: {e}") from e


class JsonlFileAuditSink:
    """Append-only JSONL file sink.

    Creates parent directories on first write and never truncates the file.
    """

    def __init__(self, file_path: str | Path = DEFAULT_AUDIT_LOG_PATH) -> None:
        self._file_path = Path(file_path)

    @property
    def file_path(self) -> Path:
        """Return the configured file path."""
        return self._file_path

    def emit(self, event: dict[str, Any]) -> None:
        line = _serialize(event) + "\n"

        parent = self._file_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise AuditSinkError(f"Failed to write audit event to {self._file_path}: {e}") from e


class InMemoryAuditSink:
    """In-memory audit sink for testing (no disk writes)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def emit(self, event: dict[str, Any]) -> None:
        # Round-trip through JSON so tests see exactly what a real sink would write
        self._events.append(json.loads(_serialize(event)))

    @property
    def events(self) -> list[dict[str, Any]]:
        """Return all emitted events."""
        return list(self._events)

    @property
    def event_types(self) -> list[str]:
        return [e["event_type"] for e in self._events]

    def clear(self) -> None:
        """Clear all stored events."""
        self._events.clear()


class DatadogLogSink:
    """Ships audit events to the Datadog HTTP log intake.

    Each event becomes one log entry whose ``status`` is ``error`` for
    aborted runs and failed merges, ``success`` otherwise.
    """

    def __init__(
        self,
        *,
        api_key: str,
        intake_url: str = DEFAULT_DATADOG_INTAKE_URL,
        hostname: str = "mergeflow",
        timeout_seconds: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the Datadog sink.

        Args:
            api_key: Datadog API key, sent as the DD-API-KEY header.
            intake_url: Log intake endpoint for the Datadog site.
            hostname: Hostname attribute attached to every entry.
            timeout_seconds: Per-request timeout.
            http_client: Optional httpx.Client for dependency injection (testing).
        """
        if not api_key:
            raise ValueError("Datadog api_key is required")
        self._api_key = api_key
        self._intake_url = intake_url
        self._hostname = hostname
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    def build_entry(self, event: dict[str, Any]) -> dict[str, Any]:
        """Shape an audit event into a Datadog log entry."""
        event_type = str(event.get("event_type", ""))
        status = "error" if event_type.endswith(ERROR_EVENT_SUFFIXES) else "success"
        return {
            "ddsource": DATADOG_SOURCE,
            "ddtags": DATADOG_TAGS,
            "hostname": self._hostname,
            "service": DATADOG_SERVICE,
            "status": status,
            "message": _serialize(event),
            "date_happened": event.get("occurred_at_epoch"),
            **{k: v for k, v in event.items() if k not in ("message", "status")},
        }

    def emit(self, event: dict[str, Any]) -> None:
        entry = self.build_entry(event)
        headers = {"Content-Type": "application/json", "DD-API-KEY": self._api_key}

        client = self._http_client
        should_close = False
        if client is None:
            client = httpx.Client(timeout=self._timeout_seconds)
            should_close = True

        try:
            response = client.post(self._intake_url, json=entry, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AuditSinkError(
                f"Datadog intake rejected event: HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise AuditSinkError(f"Datadog intake unreachable: {e}") from e
        finally:
            if should_close:
                client.close()
