"""Tests for query generation and plan parsing."""

from __future__ import annotations

import dataclasses

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import SearchMode
from deep_research.domain.values import OrderBy, SearchPlan
from deep_research.infrastructure.llm import LLMInvoker
from deep_research.services.planning import (
    SearchPlanner,
    clean_keyword_query,
    extract_qualifiers,
    format_previous_queries,
    parse_order_by,
    parse_semantic_plan,
)
from deep_research.testing import ScriptedChatModel, scripted_research_model
from deep_research.testing.mock_llm import CLAIMS_QUERY, KEYWORD_QUERY, SEMANTIC_QUERY


def _planner(model: ScriptedChatModel) -> SearchPlanner:
    return SearchPlanner(LLMInvoker.single(model))


class TestParseSemanticPlan:

    def test_full_object_in_code_fence(self) -> None:
        text = (
            "```json\n"
            '{"query": "rate limiting rollout", "created_after": "2024-01-01", '
            '"created_before": "2024-06-30", "order_by": "created_at desc"}\n'
            "```"
        )
        parsed = parse_semantic_plan(text)
        assert parsed.query == "rate limiting rollout"
        assert parsed.created_after == "2024-01-01"
        assert parsed.created_before == "2024-06-30"
        assert parsed.order_by == OrderBy(key="created_at", direction="desc")

    def test_plain_text_is_used_verbatim(self) -> None:
        parsed = parse_semantic_plan("  how is caching invalidated  ")
        assert parsed.query == "how is caching invalidated"
        assert parsed.created_after is None
        assert parsed.order_by is None

    def test_object_without_query_falls_back_to_raw(self) -> None:
        text = '{"created_after": "2024-01-01"}'
        assert parse_semantic_plan(text).query == text

    def test_invalid_order_by_is_ignored(self) -> None:
        parsed = parse_semantic_plan('{"query": "q", "order_by": "updated_at desc"}')
        assert parsed.query == "q"
        assert parsed.order_by is None

    def test_parse_order_by(self) -> None:
        assert parse_order_by("created_at asc") == OrderBy(key="created_at", direction="asc")
        assert parse_order_by("created_at") is None
        assert parse_order_by("created_at sideways") is None
        assert parse_order_by(3) is None


class TestQueryHelpers:

    def test_clean_keyword_query_takes_first_line(self) -> None:
        assert clean_keyword_query("```\nrepo:acme/widgets cache\nextra\n```") == (
            "repo:acme/widgets cache"
        )
        assert clean_keyword_query("`is:pr cache`") == "is:pr cache"
        assert clean_keyword_query("   ") == ""

    def test_extract_qualifiers(self) -> None:
        qualifiers = extract_qualifiers("repo:acme/widgets author:alice cache eviction")
        assert qualifiers.repo == "acme/widgets"
        assert qualifiers.author == "alice"
        assert qualifiers.semantic_query == "cache eviction"

    def test_extract_qualifiers_without_any(self) -> None:
        qualifiers = extract_qualifiers("cache eviction")
        assert qualifiers.repo is None
        assert qualifiers.author is None

    def test_format_previous_queries(self, context: ResearchContext) -> None:
        assert format_previous_queries(context.memory) == "None yet."
        context.memory.search_queries.extend(["a", "b"])
        assert format_previous_queries(context.memory) == "- a\n- b"


class TestSearchPlanner:

    def test_one_plan_per_mode(self, context: ResearchContext) -> None:
        plans = _planner(scripted_research_model()).next_plans(context)
        assert plans == [
            SearchPlan(tool=SearchMode.SEMANTIC, query="caching behaviour follow-up"),
            SearchPlan(tool=SearchMode.KEYWORD, query="caching is:issue"),
        ]

    def test_depth_exhausted_returns_none(self, context: ResearchContext) -> None:
        model = scripted_research_model()
        context.current_depth = context.max_depth
        assert _planner(model).next_plans(context) is None
        assert model.calls() == []

    def test_unsupported_claims_take_priority(self, context: ResearchContext) -> None:
        model = scripted_research_model()
        context.current_depth = context.max_depth
        context.unsupported_claims = ["Caching shipped in v2", "Redis was dropped"]
        plans = _planner(model).next_plans(context)
        assert plans is not None
        assert [plan.tool for plan in plans] == [SearchMode.SEMANTIC, SearchMode.KEYWORD]
        assert {plan.query for plan in plans} == {"evidence for the unsupported claims"}
        prompt = model.calls(CLAIMS_QUERY)[0]
        assert "1. Caching shipped in v2" in prompt
        assert "2. Redis was dropped" in prompt

    def test_temporal_hints_are_carried(self, context: ResearchContext) -> None:
        model = scripted_research_model(
            overrides=[
                (
                    SEMANTIC_QUERY,
                    '{"query": "cache rewrite", "created_after": "2024-03-01", '
                    '"order_by": "created_at asc"}',
                )
            ]
        )
        plans = _planner(model).next_plans(context)
        assert plans is not None
        semantic = plans[0]
        assert semantic.created_after == "2024-03-01"
        assert semantic.order_by == OrderBy(key="created_at", direction="asc")

    def test_llm_failure_falls_back_to_request(self, context: ResearchContext) -> None:
        model = scripted_research_model(
            overrides=[
                (SEMANTIC_QUERY, RuntimeError("boom")),
                (KEYWORD_QUERY, RuntimeError("boom")),
            ]
        )
        plans = _planner(model).next_plans(context)
        assert plans is not None
        assert [plan.query for plan in plans] == [context.request, context.request]

    def test_empty_keyword_response_falls_back(self, context: ResearchContext) -> None:
        model = scripted_research_model(overrides=[(KEYWORD_QUERY, "")])
        plans = _planner(model).next_plans(context)
        assert plans is not None
        assert plans[1].query == context.request

    def test_hybrid_mode_pairs_sub_queries(self, context: ResearchContext) -> None:
        context = dataclasses.replace(context, search_modes=(SearchMode.HYBRID,))
        plans = _planner(scripted_research_model()).next_plans(context)
        assert plans is not None
        (plan,) = plans
        assert plan.tool is SearchMode.HYBRID
        assert list(plan.queries()) == [
            (SearchMode.SEMANTIC, "caching behaviour follow-up"),
            (SearchMode.KEYWORD, "caching is:issue"),
        ]

    def test_prompt_includes_previous_queries(self, context: ResearchContext) -> None:
        model = scripted_research_model()
        context.memory.search_queries.append("semantic: earlier query")
        _planner(model).next_plans(context)
        assert "- semantic: earlier query" in model.calls(SEMANTIC_QUERY)[0]
