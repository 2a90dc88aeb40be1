"""Duplicate resolution domain models.

Defines the typed values that flow through a resolution run:
- RawCandidate (collaborator boundary), Candidate, RankedSet, MergeOutcome
- ValidationResult, RunState, ResolutionRun
- RecordStore and ValidationSignal collaborator protocols
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

EPOCH_MILLIS_THRESHOLD = 10**11


def coerce_timestamp(value: Any) -> datetime:
    """Coerce a record store timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (with or without a trailing ``Z``),
    and epoch values. Epoch values above EPOCH_MILLIS_THRESHOLD are read as
    milliseconds, the unit CRM exports use for ``createdate``.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool) or value is None:
        raise ValueError(f"Not a timestamp: {value!r}")
    elif isinstance(value, int | float):
        parsed = _from_epoch(float(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        if text.lstrip("-").replace(".", "", 1).isdigit():
            parsed = _from_epoch(float(text))
        else:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _from_epoch(raw: float) -> datetime:
    seconds = raw / 1000 if abs(raw) >= EPOCH_MILLIS_THRESHOLD else raw
    return datetime.fromtimestamp(seconds, tz=UTC)


class RawCandidate(BaseModel):
    """A record returned by the record store search, coerced once at ingestion.

    Attributes:
        id: Opaque record identifier from the store.
        secondary_attribute: Value handed to the validation signal (e.g. email).
        created_at: Record creation timestamp (aware, UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    secondary_attribute: str | None = None
    created_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def id_to_string(cls, v: Any) -> str:
        if v is None:
            raise ValueError("Record id is required")
        text = str(v).strip()
        if not text:
            raise ValueError("Record id cannot be empty")
        return text

    @field_validator("secondary_attribute", mode="before")
    @classmethod
    def blank_attribute_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> datetime:
        return coerce_timestamp(v)


class Candidate(BaseModel):
    """A scored candidate. Immutable once produced by the scorer.

    Attributes:
        id: Opaque record identifier.
        dedup_key: Key value the candidate was found under.
        created_at: Record creation timestamp.
        quality_score: Trust indicator from the validation signal (0 on failure).
        scoring_error: Failure message when the score was defaulted.
        validation_details: Normalized provider flags behind the score.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    dedup_key: str
    created_at: datetime
    quality_score: float = 0.0
    scoring_error: str | None = None
    validation_details: dict[str, Any] = Field(default_factory=dict)


class RankedSet(BaseModel):
    """Candidates in rank order with the designated merge target.

    Attributes:
        candidates: All candidates sorted by (-quality_score, created_at).
        target: First-ranked candidate; survives the merge.
        sources: Remaining candidates to merge, in rank order, without
            self-matches.
    """

    model_config = ConfigDict(frozen=True)

    candidates: tuple[Candidate, ...]
    target: Candidate
    sources: tuple[Candidate, ...] = ()


class MergeOutcome(BaseModel):
    """Result of merging one source into the target."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    target_id: str
    succeeded: bool
    error_detail: str | None = None


class ValidationResult(BaseModel):
    """Normalized response of a validation provider.

    Attributes:
        provider_id: Provider that produced the result.
        quality_score: Numeric quality indicator, None if the provider gave none.
        details: Provider-specific normalized flags (deliverability etc.).
    """

    provider_id: str
    quality_score: float | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class RunState(StrEnum):
    """Lifecycle state of a resolution run."""

    IDLE = "IDLE"
    FINDING = "FINDING"
    SCORING = "SCORING"
    RANKING = "RANKING"
    MERGING = "MERGING"
    DONE = "DONE"
    ABORTED = "ABORTED"


TERMINAL_STATES = frozenset({RunState.DONE, RunState.ABORTED})


class ResolutionRun(BaseModel):
    """Result value of one resolution run.

    Attributes:
        run_id: Correlation ID for logs and audit events.
        dedup_key: Key the run was started for (None when absent).
        state: Terminal state, DONE or ABORTED.
        state_history: Every state the run passed through, IDLE first.
        ranked: Ranked candidates, when the run got past ranking.
        outcomes: One outcome per merged source, in merge order.
        error: Lookup failure detail when ABORTED.
        skipped_reason: Why a DONE run performed no work, if it did none.
    """

    run_id: str
    dedup_key: str | None = None
    state: RunState
    state_history: list[RunState] = Field(default_factory=list)
    ranked: RankedSet | None = None
    outcomes: list[MergeOutcome] = Field(default_factory=list)
    error: str | None = None
    skipped_reason: str | None = None

    @field_validator("state")
    @classmethod
    def _terminal_state(cls, v: RunState) -> RunState:
        if v not in TERMINAL_STATES:
            raise ValueError(f"run result must be in a terminal state, got {v.value}")
        return v

    @property
    def merged_count(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def target_id(self) -> str | None:
        return self.ranked.target.id if self.ranked is not None else None

    def summary(self) -> dict[str, Any]:
        """Return a deterministic, JSON-ready summary of the run."""
        return {
            "dedup_key": self.dedup_key,
            "error": self.error,
            "failed_count": self.failed_count,
            "merged_count": self.merged_count,
            "outcomes": [o.model_dump() for o in self.outcomes],
            "ranked_ids": (
                [c.id for c in self.ranked.candidates] if self.ranked is not None else []
            ),
            "run_id": self.run_id,
            "skipped_reason": self.skipped_reason,
            "state": self.state.value,
            "state_history": [s.value for s in self.state_history],
            "target_id": self.target_id,
            "validation_details": (
                {c.id: c.validation_details for c in self.ranked.candidates}
                if self.ranked is not None
                else {}
            ),
        }


@runtime_checkable
class RecordStore(Protocol):
    """Contract for the external contact store."""

    def search(self, key: str, *, attribute: str) -> list[RawCandidate]:
        """Return every record whose ``attribute`` equals ``key``.

        Raises:
            RecordStoreError: On transport, HTTP, or payload errors.
        """
        ...

    def merge(self, source_id: str, target_id: str) -> None:
        """Merge the source record into the target record.

        Raises:
            RecordStoreError: If the store rejects or cannot perform the merge.
        """
        ...


@runtime_checkable
class ValidationSignal(Protocol):
    """Contract for an external validation provider."""

    @property
    def provider_id(self) -> str:
        """Unique identifier for this provider."""
        ...

    def validate(self, attribute: str) -> ValidationResult:
        """Validate an attribute value and return its quality indicator.

        Raises:
            ValidationSignalError: On transport, HTTP, or payload errors.
        """
        ...
