"""Duplicate resolution engine.

Finds records sharing a dedup key, scores them with an external validation
signal, ranks them, and merges every other record into the best one.
"""

from mergeflow.services.resolution.errors import (
    LookupFailure,
    MergeFailure,
    RecordStoreError,
    ScoringFailure,
    ValidationSignalError,
)
from mergeflow.services.resolution.finder import CandidateFinder, normalize_dedup_key
from mergeflow.services.resolution.merger import MergeExecutor
from mergeflow.services.resolution.models import (
    Candidate,
    MergeOutcome,
    RankedSet,
    RawCandidate,
    ResolutionRun,
    RunState,
    ValidationResult,
)
from mergeflow.services.resolution.ranker import rank
from mergeflow.services.resolution.scorer import QualityScorer
from mergeflow.services.resolution.service import (
    DuplicateResolutionService,
    create_default_resolution_service,
)

__all__ = [
    "Candidate",
    "CandidateFinder",
    "DuplicateResolutionService",
    "LookupFailure",
    "MergeExecutor",
    "MergeFailure",
    "MergeOutcome",
    "QualityScorer",
    "RankedSet",
    "RawCandidate",
    "RecordStoreError",
    "ResolutionRun",
    "RunState",
    "ScoringFailure",
    "ValidationResult",
    "ValidationSignalError",
    "create_default_resolution_service",
    "normalize_dedup_key",
    "rank",
]
