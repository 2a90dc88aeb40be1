"""Error taxonomy for duplicate resolution runs.

Only LookupFailure is fatal for a run. ScoringFailure and MergeFailure are
recovered locally and surface as data on the run result.
"""

from __future__ import annotations


class RecordStoreError(Exception):
    """Raised when a record store search or merge request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ValidationSignalError(Exception):
    """Raised when a validation provider request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class LookupFailure(Exception):
    """Raised when candidate lookup is unreachable or returns malformed data."""

    def __init__(self, dedup_key: str, reason: str) -> None:
        self.dedup_key = dedup_key
        self.reason = reason
        super().__init__(f"Candidate lookup failed for key={dedup_key!r}: {reason}")


class ScoringFailure(Exception):
    """Raised inside the scorer when a candidate cannot be scored."""

    def __init__(self, candidate_id: str, reason: str) -> None:
        self.candidate_id = candidate_id
        self.reason = reason
        super().__init__(f"Scoring failed for candidate={candidate_id}: {reason}")


class MergeFailure(Exception):
    """Raised when a single source cannot be merged into the target."""

    def __init__(self, source_id: str, target_id: str, reason: str) -> None:
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason
        super().__init__(f"Merge of {source_id} into {target_id} failed: {reason}")
