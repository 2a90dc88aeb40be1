"""Ranker / target selector.

Order is highest quality_score first, then oldest created_at first. Python's
sort is stable, so candidates equal on both keys keep their input order and
re-ranking a ranked set is a no-op.
"""

from __future__ import annotations

from collections.abc import Sequence

from mergeflow.services.resolution.models import Candidate, RankedSet


def rank_key(candidate: Candidate) -> tuple[float, float]:
    """Sort key: (-quality_score, created_at as epoch seconds)."""
    return (-candidate.quality_score, candidate.created_at.timestamp())


def rank(candidates: Sequence[Candidate]) -> RankedSet:
    """Rank candidates and designate the merge target.

    Args:
        candidates: Scored candidates, in lookup order.

    Returns:
        RankedSet whose sources exclude any candidate sharing the target id.
        A source id listed more than once is kept at its first position only.

    Raises:
        ValueError: If candidates is empty.
    """
    if not candidates:
        raise ValueError("Cannot rank an empty candidate set")

    ordered = sorted(candidates, key=rank_key)
    target = ordered[0]

    seen = {target.id}
    sources: list[Candidate] = []
    for candidate in ordered[1:]:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        sources.append(candidate)

    return RankedSet(candidates=tuple(ordered), target=target, sources=tuple(sources))
