"""Candidate finder: one record store lookup per run."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from mergeflow.services.resolution.errors import LookupFailure
from mergeflow.services.resolution.models import RawCandidate, RecordStore

logger = logging.getLogger(__name__)


def normalize_dedup_key(value: object) -> str | None:
    """Return the trimmed dedup key, or None when it is absent or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class CandidateFinder:
    """Finds every record sharing a dedup key.

    Any failure of the lookup (transport, HTTP status, malformed payload)
    is raised as LookupFailure so the run aborts before any merge.
    """

    def __init__(self, record_store: RecordStore, *, dedup_property: str = "phone") -> None:
        self._record_store = record_store
        self._dedup_property = dedup_property

    @property
    def dedup_property(self) -> str:
        return self._dedup_property

    def find_candidates(self, dedup_key: str) -> list[RawCandidate]:
        """Search the record store for candidates sharing ``dedup_key``.

        Args:
            dedup_key: Non-empty key value. Callers skip the run when absent.

        Returns:
            Raw candidates as returned by the store (zero, one or many).

        Raises:
            ValueError: If dedup_key is empty.
            LookupFailure: If the store is unreachable or returns malformed data.
        """
        if not dedup_key:
            raise ValueError("dedup_key must be a non-empty string")

        try:
            found = self._record_store.search(dedup_key, attribute=self._dedup_property)
        except ValidationError as exc:
            raise LookupFailure(dedup_key, f"malformed record: {exc}") from exc
        except Exception as exc:
            raise LookupFailure(dedup_key, str(exc)) from exc

        if not isinstance(found, list) or not all(isinstance(r, RawCandidate) for r in found):
            raise LookupFailure(dedup_key, "record store returned an unexpected payload")

        logger.info(
            "Found %d candidate(s) for %s=%s",
            len(found),
            self._dedup_property,
            dedup_key,
        )
        return found
