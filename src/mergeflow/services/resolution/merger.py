"""Merge executor: sequential, in rank order, continues past failures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from mergeflow.services.resolution.errors import MergeFailure
from mergeflow.services.resolution.models import Candidate, MergeOutcome, RecordStore

logger = logging.getLogger(__name__)

OutcomeListener = Callable[[MergeOutcome], None]


class MergeExecutor:
    """Merges each source into the target, one call at a time.

    Merges must not run concurrently: the surviving record is the target of
    every call, and the store may re-point ids as merges land. A failed
    merge is recorded and the next source is attempted; nothing is rolled
    back.
    """

    def __init__(self, record_store: RecordStore) -> None:
        self._record_store = record_store

    def merge_all(
        self,
        target: Candidate,
        sources: Sequence[Candidate],
        *,
        on_outcome: OutcomeListener | None = None,
    ) -> list[MergeOutcome]:
        """Merge every source into target in the given order.

        Args:
            target: Surviving candidate.
            sources: Candidates to retire, in rank order.
            on_outcome: Optional callback invoked after each merge attempt.

        Returns:
            One MergeOutcome per attempted source, in merge order.
        """
        outcomes: list[MergeOutcome] = []

        for source in sources:
            if source.id == target.id:
                logger.warning("Skipping self-merge of record %s", source.id)
                continue

            try:
                self._merge_one(source.id, target.id)
            except MergeFailure as exc:
                logger.error("%s", exc)
                outcome = MergeOutcome(
                    source_id=source.id,
                    target_id=target.id,
                    succeeded=False,
                    error_detail=exc.reason,
                )
            else:
                logger.info("Merged record id=%s into record id=%s", source.id, target.id)
                outcome = MergeOutcome(
                    source_id=source.id,
                    target_id=target.id,
                    succeeded=True,
                )

            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)

        return outcomes

    def _merge_one(self, source_id: str, target_id: str) -> None:
        try:
            self._record_store.merge(source_id, target_id)
        except Exception as exc:
            raise MergeFailure(source_id, target_id, str(exc) or type(exc).__name__) from exc
