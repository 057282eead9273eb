"""Tests for compaction targets, priorities and pruning."""

from __future__ import annotations

import pytest

from deep_research.domain.entities import ConversationHit
from deep_research.services.compaction import (
    CompactionPlan,
    compact,
    plan_compaction,
    priority,
    sort_by_priority,
    target_count,
)


class TestTargets:

    @pytest.mark.parametrize(
        ("attempt", "baseline", "expected"),
        [
            (1, 100, 70),
            (2, 100, 50),
            (3, 100, 25),
            (1, 10, 7),
            (2, 10, 5),
            (3, 10, 3),
            (1, 7, 4),
            (2, 7, 3),
            (3, 7, 2),
        ],
    )
    def test_target_count(self, attempt: int, baseline: int, expected: int) -> None:
        assert target_count(attempt, baseline) == expected

    @pytest.mark.parametrize("attempt", [0, 4])
    def test_out_of_range_attempt(self, attempt: int) -> None:
        with pytest.raises(ValueError, match="compaction attempt"):
            target_count(attempt, 10)

    def test_successive_attempts_use_the_baseline(self) -> None:
        first = plan_compaction(100, 1)
        second = plan_compaction(first.keep, 2, baseline=100)
        third = plan_compaction(second.keep, 3, baseline=100)
        assert [first.keep, second.keep, third.keep] == [70, 50, 25]
        assert [first.removed, second.removed, third.removed] == [30, 20, 25]
        assert [first.strip, second.strip, third.strip] == [False, True, True]

    def test_never_grows_the_list(self) -> None:
        plan = plan_compaction(20, 1, baseline=100)
        assert plan == CompactionPlan(attempt=1, keep=20, strip=False, removed=0)

    def test_keeps_at_least_one_hit(self) -> None:
        assert plan_compaction(2, 2, baseline=2).keep == 1
        assert plan_compaction(1, 3, baseline=1).keep == 1


class TestPruning:

    def test_priority_components(self, hit_factory) -> None:
        with_summary = hit_factory(1, score=0.8)
        without = hit_factory(2, summary="", score=-1.0)
        assert priority(with_summary, 0, 2) == pytest.approx(10.0 + 0.8 + 0.2)
        assert priority(without, 1, 2) == pytest.approx(0.1)

    def test_summaries_outrank_scores(self, hit_factory) -> None:
        hits = [
            hit_factory(1, summary="", score=0.9),
            hit_factory(2, score=0.1),
            hit_factory(3, score=0.5),
        ]
        ranked = sort_by_priority(hits)
        assert [hit.url[-1] for hit in ranked] == ["3", "2", "1"]

    def test_earlier_discoveries_break_ties(self, hit_factory) -> None:
        hits = [hit_factory(i, score=0.5) for i in range(1, 4)]
        assert sort_by_priority(hits) == hits

    def test_compact_without_strip(self, hit_factory) -> None:
        hits = [hit_factory(i, score=i / 2) for i in range(1, 6)]
        kept = compact(hits, plan_compaction(5, 1))
        assert [hit.url[-1] for hit in kept] == ["5", "4", "3"]
        assert all("body" in hit.conversation["issue"] for hit in kept)

    def test_compact_with_strip(self, hit_factory) -> None:
        hits = [hit_factory(i) for i in range(1, 5)]
        kept = compact(hits, plan_compaction(4, 2))
        assert len(kept) == 2
        for hit in kept:
            assert isinstance(hit, ConversationHit)
            assert "body" not in hit.conversation["issue"]
            assert hit.conversation["comments_count"] == 2
            assert "comments" not in hit.conversation
