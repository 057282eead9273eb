"""Tests for concurrent multi-question research."""

from __future__ import annotations

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import SearchMode
from deep_research.infrastructure.config import ResearchConfig
from deep_research.pipeline import (
    BatchResearchResult,
    ParallelResearchFlow,
    TimePeriod,
    format_batch_summary,
)
from deep_research.pipeline.batch import QuestionOutcome
from deep_research.services.clarification import StaticAnswerSource
from deep_research.testing import scripted_research_model
from deep_research.testing.mock_llm import CLARIFY

QUESTIONS = ["How does caching work?", "Why was caching reworked?", "Who maintains caching?"]


class TestParallelResearchFlow:

    def test_every_question_gets_its_own_context(
        self, config: ResearchConfig, clients_for, answers: StaticAnswerSource
    ) -> None:
        result = ParallelResearchFlow.start_batch(
            QUESTIONS, config, clients_for(scripted_research_model()), answer_source=answers
        )
        assert list(result.outcomes) == ["question_1", "question_2", "question_3"]
        contexts = list(result.results.values())
        assert [c.request for c in contexts] == QUESTIONS
        assert [c.question_id for c in contexts] == ["question_1", "question_2", "question_3"]
        assert len({id(c.memory) for c in contexts}) == 3
        assert all(outcome.completed for outcome in result.outcomes.values())
        assert result.failed == []
        assert result.total_conversations == sum(len(c.memory) for c in contexts)

    def test_failure_is_isolated(
        self, config: ResearchConfig, clients_for, answers: StaticAnswerSource
    ) -> None:
        def questions(prompt: str) -> str:
            if "Who maintains" in prompt:
                raise RuntimeError("boom")
            return "1. Which repository?"

        model = scripted_research_model(overrides=[(CLARIFY, questions)])
        result = ParallelResearchFlow.start_batch(
            QUESTIONS, config, clients_for(model), answer_source=answers
        )
        assert result.failed == ["question_3"]
        assert result.outcomes["question_3"].error is not None
        assert result.outcomes["question_1"].completed
        assert result.outcomes["question_2"].completed

    def test_empty_batch(self, config: ResearchConfig, clients_for) -> None:
        result = ParallelResearchFlow.start_batch([], config, clients_for(scripted_research_model()))
        assert result.outcomes == {}
        assert result.average_iterations == 0.0

    def test_build_uses_parallel_nodes(self, config: ResearchConfig, clients_for) -> None:
        flow = ParallelResearchFlow.build(config, clients_for(scripted_research_model()))
        assert isinstance(flow, ParallelResearchFlow)
        assert flow.max_workers == config.max_workers
        names = {node.label: type(node).__name__ for node in flow.nodes()}
        assert names["retriever"] == "ParallelRetrieverNode"
        assert names["claim_verifier"] == "ParallelClaimVerifierNode"


class TestBatchVariants:

    def test_comparative_research(
        self, config: ResearchConfig, clients_for, answers: StaticAnswerSource
    ) -> None:
        result = ParallelResearchFlow.comparative_research(
            "How is caching done?",
            ["acme/widgets", "acme/gadgets"],
            config,
            clients_for(scripted_research_model()),
            answer_source=answers,
        )
        contexts = list(result.results.values())
        assert [c.request for c in contexts] == [
            "How is caching done? (in repository acme/widgets)",
            "How is caching done? (in repository acme/gadgets)",
        ]
        assert all(c.search_modes == (SearchMode.SEMANTIC,) for c in contexts)

    def test_temporal_research(
        self, config: ResearchConfig, clients_for, answers: StaticAnswerSource
    ) -> None:
        periods = [
            TimePeriod(after="2024-01-01", before="2024-06-30"),
            TimePeriod(after="2024-07-01", label="second half"),
        ]
        result = ParallelResearchFlow.temporal_research(
            "What changed in caching?",
            periods,
            config,
            clients_for(scripted_research_model()),
            answer_source=answers,
        )
        assert [c.request for c in result.results.values()] == [
            "What changed in caching? (during 2024-01-01 to 2024-06-30)",
            "What changed in caching? (during second half)",
        ]

    def test_time_period_display(self) -> None:
        assert TimePeriod().display == "start to now"
        assert TimePeriod(before="2024-01-01").display == "start to 2024-01-01"


class TestBatchSummary:

    def test_summary_sections(self, context: ResearchContext, hit_factory) -> None:
        context.memory.add_hits([hit_factory(1)])
        context.memory.search_queries.append("semantic: caching")
        context.final_report = "# Report"
        failed = ResearchContext.from_config("Broken question", ResearchConfig())
        result = BatchResearchResult(
            outcomes={
                "question_1": QuestionOutcome("question_1", context),
                "question_2": QuestionOutcome("question_2", failed, error="boom"),
            }
        )
        text = format_batch_summary(result)
        assert text.startswith("# Parallel Research Summary\n")
        assert "Processed 2 research questions" in text
        assert "## Question 1" in text
        assert "**Search Queries**: semantic: caching" in text
        assert "**Status**: Completed" in text
        assert "# Report" in text
        assert "**Status**: Failed (boom)" in text
