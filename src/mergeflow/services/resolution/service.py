"""Duplicate resolution service.

The single entry point for a resolution run. Drives the run through:

1. Missing key check -> DONE (skipped), no outbound calls
2. Candidate lookup -> ABORTED on LookupFailure, no merges
3. Fewer than two candidates -> DONE (skipped)
4. Score candidates (bounded fan-out, failures default to 0)
5. Rank and select the target
6. Merge sources sequentially in rank order, continuing past failures
7. DONE with one MergeOutcome per source

Nothing raises out of run(); failures are reported on the ResolutionRun.
Lifecycle events go to an optional audit sink.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import httpx

from mergeflow.audit.sink import (
    AuditSink,
    AuditSinkError,
    DatadogLogSink,
    JsonlFileAuditSink,
)
from mergeflow.config import ResolutionConfig
from mergeflow.services.resolution.connectors.abstractapi import AbstractApiEmailValidator
from mergeflow.services.resolution.connectors.hubspot import HubSpotRecordStore
from mergeflow.services.resolution.connectors.kickbox import KickboxEmailValidator
from mergeflow.services.resolution.errors import LookupFailure
from mergeflow.services.resolution.finder import CandidateFinder, normalize_dedup_key
from mergeflow.services.resolution.merger import MergeExecutor
from mergeflow.services.resolution.models import (
    MergeOutcome,
    RankedSet,
    ResolutionRun,
    RunState,
)
from mergeflow.services.resolution.ranker import rank
from mergeflow.services.resolution.registry import ValidationSignalRegistry
from mergeflow.services.resolution.scorer import QualityScorer

logger = logging.getLogger(__name__)

SKIP_NO_KEY = "no dedup key"
SKIP_TOO_FEW = "fewer than two candidates"
SKIP_DRY_RUN = "dry run"


class DuplicateResolutionService:
    """Orchestrates one duplicate resolution run per call to run()."""

    def __init__(
        self,
        *,
        finder: CandidateFinder,
        scorer: QualityScorer,
        merger: MergeExecutor,
        audit_sink: AuditSink | None = None,
    ) -> None:
        """Initialize the resolution service.

        Args:
            finder: Candidate finder bound to a record store.
            scorer: Quality scorer bound to a validation signal.
            merger: Merge executor bound to the same record store.
            audit_sink: Optional sink for lifecycle events.
        """
        self._finder = finder
        self._scorer = scorer
        self._merger = merger
        self._audit_sink = audit_sink

    @property
    def dedup_property(self) -> str:
        return self._finder.dedup_property

    def run(
        self,
        dedup_key: str | None,
        *,
        dry_run: bool = False,
        run_id: str | None = None,
    ) -> ResolutionRun:
        """Resolve duplicates sharing ``dedup_key``.

        Args:
            dedup_key: Raw key value from the inbound event (may be blank).
            dry_run: Stop after ranking without merging.
            run_id: Optional correlation ID (generated if not provided).

        Returns:
            ResolutionRun in state DONE or ABORTED.
        """
        run_id = run_id or str(uuid.uuid4())
        key = normalize_dedup_key(dedup_key)
        history = [RunState.IDLE]

        if key is None:
            logger.info("[%s] No dedup key in event, no action needed", run_id)
            self._transition(run_id, history, RunState.DONE)
            self._emit(run_id, "resolution.skipped", None, {"reason": SKIP_NO_KEY})
            return ResolutionRun(
                run_id=run_id,
                state=RunState.DONE,
                state_history=history,
                skipped_reason=SKIP_NO_KEY,
            )

        self._emit(
            run_id,
            "resolution.started",
            key,
            {"dedup_property": self._finder.dedup_property, "dry_run": dry_run},
        )

        self._transition(run_id, history, RunState.FINDING)
        try:
            raws = self._finder.find_candidates(key)
        except LookupFailure as exc:
            logger.error("[%s] %s", run_id, exc)
            self._transition(run_id, history, RunState.ABORTED)
            self._emit(run_id, "resolution.aborted", key, {"error": exc.reason})
            return ResolutionRun(
                run_id=run_id,
                dedup_key=key,
                state=RunState.ABORTED,
                state_history=history,
                error=exc.reason,
            )

        if len(raws) <= 1:
            logger.info("[%s] Less than two records found, no action needed", run_id)
            self._transition(run_id, history, RunState.DONE)
            self._emit(
                run_id,
                "resolution.skipped",
                key,
                {"reason": SKIP_TOO_FEW, "candidate_count": len(raws)},
            )
            return ResolutionRun(
                run_id=run_id,
                dedup_key=key,
                state=RunState.DONE,
                state_history=history,
                skipped_reason=SKIP_TOO_FEW,
            )

        self._transition(run_id, history, RunState.SCORING)
        candidates = self._scorer.score_all(raws, key)

        self._transition(run_id, history, RunState.RANKING)
        ranked = rank(candidates)
        logger.info(
            "[%s] Target record id=%s (score=%s), %d source(s)",
            run_id,
            ranked.target.id,
            ranked.target.quality_score,
            len(ranked.sources),
        )

        if dry_run:
            self._transition(run_id, history, RunState.DONE)
            self._emit(run_id, "resolution.completed", key, self._completion_details(ranked, []))
            return ResolutionRun(
                run_id=run_id,
                dedup_key=key,
                state=RunState.DONE,
                state_history=history,
                ranked=ranked,
                skipped_reason=SKIP_DRY_RUN,
            )

        self._transition(run_id, history, RunState.MERGING)
        outcomes = self._merger.merge_all(
            ranked.target,
            ranked.sources,
            on_outcome=lambda outcome: self._emit_outcome(run_id, key, outcome),
        )

        self._transition(run_id, history, RunState.DONE)
        self._emit(run_id, "resolution.completed", key, self._completion_details(ranked, outcomes))
        return ResolutionRun(
            run_id=run_id,
            dedup_key=key,
            state=RunState.DONE,
            state_history=history,
            ranked=ranked,
            outcomes=outcomes,
        )

    @staticmethod
    def _transition(run_id: str, history: list[RunState], state: RunState) -> None:
        logger.debug("[%s] %s -> %s", run_id, history[-1].value, state.value)
        history.append(state)

    @staticmethod
    def _completion_details(ranked: RankedSet, outcomes: list[MergeOutcome]) -> dict[str, Any]:
        return {
            "target_id": ranked.target.id,
            "ranked_ids": [c.id for c in ranked.candidates],
            "merged_count": sum(1 for o in outcomes if o.succeeded),
            "failed_count": sum(1 for o in outcomes if not o.succeeded),
            "unscored_ids": [c.id for c in ranked.candidates if c.scoring_error is not None],
            "validation_details": {c.id: c.validation_details for c in ranked.candidates},
        }

    def _emit_outcome(self, run_id: str, key: str, outcome: MergeOutcome) -> None:
        event_type = (
            "resolution.merge_succeeded" if outcome.succeeded else "resolution.merge_failed"
        )
        self._emit(run_id, event_type, key, outcome.model_dump())

    def _emit(
        self,
        run_id: str,
        event_type: str,
        dedup_key: str | None,
        details: dict[str, Any],
    ) -> None:
        """Emit a lifecycle event.

        Sink failures are logged and do not change the run outcome.
        """
        if self._audit_sink is None:
            return

        now = datetime.now(UTC)
        event: dict[str, Any] = {
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "occurred_at": now.isoformat(),
            "occurred_at_epoch": int(now.timestamp()),
            "run_id": run_id,
            "dedup_key": dedup_key,
            "payload": details,
        }
        try:
            self._audit_sink.emit(event)
        except AuditSinkError as exc:
            logger.warning("[%s] Audit emission failed for %s: %s", run_id, event_type, exc)


def build_validation_registry(
    config: ResolutionConfig,
    *,
    http_client: httpx.Client | None = None,
) -> ValidationSignalRegistry:
    """Register every validation provider that has credentials configured."""
    registry = ValidationSignalRegistry()
    if config.abstractapi_key:
        registry.register(
            AbstractApiEmailValidator(
                api_key=config.abstractapi_key,
                timeout_seconds=config.http_timeout_seconds,
                http_client=http_client,
            )
        )
    if config.kickbox_api_key:
        registry.register(
            KickboxEmailValidator(
                api_key=config.kickbox_api_key,
                timeout_seconds=config.http_timeout_seconds,
                http_client=http_client,
            )
        )
    return registry


def build_audit_sink(
    config: ResolutionConfig,
    *,
    http_client: httpx.Client | None = None,
) -> AuditSink | None:
    """Build the audit sink selected by configuration (None for ``none``)."""
    if config.audit_sink == "jsonl":
        return JsonlFileAuditSink(config.audit_log_path)
    if config.audit_sink == "datadog" and config.datadog_api_key:
        return DatadogLogSink(
            api_key=config.datadog_api_key,
            intake_url=config.datadog_intake_url,
            timeout_seconds=config.http_timeout_seconds,
            http_client=http_client,
        )
    return None


def create_default_resolution_service(
    config: ResolutionConfig,
    *,
    http_client: httpx.Client | None = None,
    audit_sink: AuditSink | None = None,
) -> DuplicateResolutionService:
    """Create a DuplicateResolutionService wired to HubSpot and the configured provider.

    Args:
        config: Loaded resolution configuration.
        http_client: Optional shared httpx.Client (testing).
        audit_sink: Overrides the configured audit sink when given.

    Returns:
        Configured DuplicateResolutionService.

    Raises:
        ProviderNotRegisteredError: If the configured provider has no credentials.
    """
    record_store = HubSpotRecordStore(
        access_token=config.hubspot_access_token,
        base_url=config.hubspot_base_url,
        secondary_property=config.secondary_property,
        timeout_seconds=config.http_timeout_seconds,
        http_client=http_client,
    )
    signal = build_validation_registry(config, http_client=http_client).get(
        config.validation_provider
    )

    return DuplicateResolutionService(
        finder=CandidateFinder(record_store, dedup_property=config.dedup_property),
        scorer=QualityScorer(signal, max_workers=config.scoring_concurrency),
        merger=MergeExecutor(record_store),
        audit_sink=(
            audit_sink
            if audit_sink is not None
            else build_audit_sink(config, http_client=http_client)
        ),
    )
