"""Context compaction: prune and detail-strip hits so the report fits.

Hits are ranked by a composite priority (non-empty summary +10, positive
relevance score as-is, and a small bonus favouring earlier discoveries),
then cut from the low-priority end.  Targets are taken against the hit
count when compaction first fired (the *baseline*), re-taken if research
added hits after a compaction:

========  ======================  ===================
attempt   kept                    payloads
========  ======================  ===================
1         baseline - ceil(30%)    untouched
2         baseline - ceil(50%)    stripped
3         ceil(25%)               stripped
========  ======================  ===================
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction

from deep_research.domain.context import MAX_COMPACTION_ATTEMPTS
from deep_research.domain.entities import ConversationHit

SUMMARY_BONUS = 10.0
RECENCY_WEIGHT = 0.1

MAX_ATTEMPTS = MAX_COMPACTION_ATTEMPTS

_REMOVE_FRACTION = {1: Fraction(3, 10), 2: Fraction(1, 2)}
_FINAL_KEEP_FRACTION = Fraction(1, 4)


def priority(hit: ConversationHit, index: int, total: int) -> float:
    """Composite priority of the hit at *index* in a list of *total* hits."""
    value = 0.0
    if hit.has_summary:
        value += SUMMARY_BONUS
    if hit.score > 0:
        value += hit.score
    value += (total - index) * RECENCY_WEIGHT
    return value


def sort_by_priority(hits: Sequence[ConversationHit]) -> list[ConversationHit]:
    """Return *hits* ordered from highest to lowest priority (stable)."""
    total = len(hits)
    ranked = sorted(
        enumerate(hits),
        key=lambda pair: priority(pair[1], pair[0], total),
        reverse=True,
    )
    return [hit for _, hit in ranked]


def target_count(attempt: int, baseline: int) -> int:
    """Number of hits attempt *attempt* keeps, given the baseline count."""
    if attempt in _REMOVE_FRACTION:
        return baseline - math.ceil(baseline * _REMOVE_FRACTION[attempt])
    if attempt == MAX_ATTEMPTS:
        return math.ceil(baseline * _FINAL_KEEP_FRACTION)
    raise ValueError(f"compaction attempt must be in 1..{MAX_ATTEMPTS}, got {attempt}")


@dataclass(frozen=True)
class CompactionPlan:
    """What one compaction attempt does to the current hit list."""

    attempt: int
    keep: int
    strip: bool
    removed: int


def plan_compaction(current: int, attempt: int, baseline: int | None = None) -> CompactionPlan:
    """Plan attempt *attempt* on a list of *current* hits.

    Never keeps more hits than exist, and keeps at least one of a non-empty list.
    """
    base = current if baseline is None else baseline
    keep = min(current, max(1, target_count(attempt, base)))
    return CompactionPlan(
        attempt=attempt,
        keep=keep,
        strip=attempt >= 2,
        removed=current - keep,
    )


def compact(hits: Sequence[ConversationHit], plan: CompactionPlan) -> list[ConversationHit]:
    """Apply *plan*: keep the top ``plan.keep`` hits, stripping if requested."""
    kept = sort_by_priority(hits)[: plan.keep]
    if plan.strip:
        kept = [hit.stripped() for hit in kept]
    return kept
