"""Deterministic fakes and builders for resolution tests.

The fakes record every call so tests can assert on ordering and side
effects without any network access.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

from mergeflow.services.resolution.errors import RecordStoreError, ValidationSignalError
from mergeflow.services.resolution.models import Candidate, RawCandidate, ValidationResult

PHONE = "+441234567890"


def ts(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=UTC)


def make_raw(record_id: str, email: str | None, created: datetime) -> RawCandidate:
    return RawCandidate(id=record_id, secondary_attribute=email, created_at=created)


def make_candidate(record_id: str, score: float, created: datetime) -> Candidate:
    return Candidate(id=record_id, dedup_key=PHONE, created_at=created, quality_score=score)


class FakeRecordStore:
    """In-memory record store that records search and merge calls."""

    def __init__(
        self,
        records: list[RawCandidate] | None = None,
        *,
        search_error: Exception | None = None,
        merge_errors: dict[str, Exception] | None = None,
    ) -> None:
        self._records = list(records or [])
        self._search_error = search_error
        self._merge_errors = dict(merge_errors or {})
        self.search_calls: list[tuple[str, str]] = []
        self.merge_calls: list[tuple[str, str]] = []

    def search(self, key: str, *, attribute: str) -> list[RawCandidate]:
        self.search_calls.append((key, attribute))
        if self._search_error is not None:
            raise self._search_error
        return list(self._records)

    def merge(self, source_id: str, target_id: str) -> None:
        self.merge_calls.append((source_id, target_id))
        error = self._merge_errors.get(source_id)
        if error is not None:
            raise error


class FakeValidationSignal:
    """Validation signal returning canned scores per attribute.

    A score mapped to an Exception raises it; unknown attributes raise
    ValidationSignalError.
    """

    def __init__(
        self,
        scores: dict[str, float | None | Exception],
        *,
        provider_id: str = "fake",
        details: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self._scores = scores
        self._details = dict(details or {})
        self._provider_id = provider_id
        self._lock = threading.Lock()
        self.calls: list[str] = []

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def validate(self, attribute: str) -> ValidationResult:
        with self._lock:
            self.calls.append(attribute)
        if attribute not in self._scores:
            raise ValidationSignalError(f"unknown attribute {attribute}")
        score = self._scores[attribute]
        if isinstance(score, Exception):
            raise score
        return ValidationResult(
            provider_id=self._provider_id,
            quality_score=score,
            details=self._details.get(attribute, {}),
        )


def transport_error() -> RecordStoreError:
    return RecordStoreError("HubSpot request failed: ConnectError('Connection refused')")
