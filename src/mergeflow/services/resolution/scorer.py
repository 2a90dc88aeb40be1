"""Quality scorer: one validation call per candidate, failures default to 0.

Scoring is a pure read, so candidates are fanned out over a bounded thread
pool. executor.map keeps input order, which makes the parallel result
identical to scoring one candidate after another.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from mergeflow.services.resolution.errors import ScoringFailure
from mergeflow.services.resolution.models import Candidate, RawCandidate, ValidationSignal

logger = logging.getLogger(__name__)

MIN_QUALITY_SCORE = 0.0
DEFAULT_MAX_WORKERS = 4


class QualityScorer:
    """Scores candidates with an external validation signal."""

    def __init__(
        self,
        validation_signal: ValidationSignal,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize the scorer.

        Args:
            validation_signal: Provider used to score secondary attributes.
            max_workers: Upper bound on concurrent validation calls.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._signal = validation_signal
        self._max_workers = max_workers

    def score_candidate(self, raw: RawCandidate, dedup_key: str) -> Candidate:
        """Score one candidate. Never raises for provider failures.

        Args:
            raw: Candidate as returned by the finder.
            dedup_key: Key the candidate was found under.

        Returns:
            Candidate with quality_score, or MIN_QUALITY_SCORE and the
            failure message in scoring_error.
        """
        try:
            score, details = self._fetch_score(raw)
        except ScoringFailure as exc:
            logger.warning("%s; defaulting score to %s", exc, MIN_QUALITY_SCORE)
            return Candidate(
                id=raw.id,
                dedup_key=dedup_key,
                created_at=raw.created_at,
                quality_score=MIN_QUALITY_SCORE,
                scoring_error=exc.reason,
            )

        return Candidate(
            id=raw.id,
            dedup_key=dedup_key,
            created_at=raw.created_at,
            quality_score=score,
            validation_details=details,
        )

    def score_all(self, raws: list[RawCandidate], dedup_key: str) -> list[Candidate]:
        """Score all candidates with at most max_workers calls in flight.

        Returns:
            Candidates in the same order as ``raws``.
        """
        if not raws:
            return []
        workers = min(self._max_workers, len(raws))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda r: self.score_candidate(r, dedup_key), raws))

    def _fetch_score(self, raw: RawCandidate) -> tuple[float, dict[str, Any]]:
        if raw.secondary_attribute is None:
            raise ScoringFailure(raw.id, "no secondary attribute to validate")

        try:
            result = self._signal.validate(raw.secondary_attribute)
        except Exception as exc:
            raise ScoringFailure(raw.id, f"{self._signal.provider_id}: {exc}") from exc

        score = result.quality_score
        if score is None or math.isnan(score):
            raise ScoringFailure(raw.id, f"{self._signal.provider_id}: no quality score")
        return float(score), dict(result.details)
