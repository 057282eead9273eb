"""Concurrent research over several questions.

Each question runs the full research flow against its own
:class:`ResearchContext`; contexts never share memory.  Useful for
comparing one question across repositories or time periods, or for
draining a queue of requests.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from deep_research.domain.context import ResearchContext
from deep_research.domain.exceptions import DeepResearchError
from deep_research.flow.flow import ParallelBatchFlow, build_flow
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.infrastructure.llm import LLMError
from deep_research.pipeline.builder import INITIAL_RESEARCH, TRANSITIONS, ResearchFlowBuilder
from deep_research.services.clarification import AnswerSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimePeriod:
    """A creation-date window for temporal research."""

    after: str | None = None
    before: str | None = None
    label: str | None = None

    @property
    def display(self) -> str:
        return self.label or f"{self.after or 'start'} to {self.before or 'now'}"


@dataclass(frozen=True)
class QuestionOutcome:
    """What one question's run produced: its context, and the error if it failed."""

    question_id: str
    context: ResearchContext
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.error is None and self.context.final_report is not None


@dataclass
class BatchResearchResult:
    """Aggregated outcome of a batch, keyed by question id."""

    outcomes: dict[str, QuestionOutcome] = field(default_factory=dict)

    @property
    def results(self) -> dict[str, ResearchContext]:
        return {qid: outcome.context for qid, outcome in self.outcomes.items()}

    @property
    def total_conversations(self) -> int:
        return sum(len(outcome.context.memory) for outcome in self.outcomes.values())

    @property
    def average_iterations(self) -> float:
        if not self.outcomes:
            return 0.0
        total = sum(outcome.context.current_depth for outcome in self.outcomes.values())
        return total / len(self.outcomes)

    @property
    def failed(self) -> list[str]:
        return [qid for qid, outcome in self.outcomes.items() if outcome.error is not None]


@dataclass
class BatchResearchRequest:
    """Shared object of a :class:`ParallelResearchFlow` run."""

    questions: Sequence[str]
    config: ResearchConfig
    result: BatchResearchResult | None = None


def question_id(index: int) -> str:
    return f"question_{index + 1}"


class ParallelResearchFlow(ParallelBatchFlow):
    """Run the research flow once per question, concurrently.

    ``post`` folds the per-question contexts into a
    :class:`BatchResearchResult` stored on the request.  A question whose
    run fails is recorded with its error and does not stop the others.
    """

    def prep(self, shared: BatchResearchRequest) -> list[dict[str, Any]]:
        if not shared.questions:
            logger.warning("No research questions provided for parallel processing")
            return []
        logger.info("=== PARALLEL RESEARCH FLOW ===")
        logger.info("Preparing %d research questions", len(shared.questions))
        batch = []
        for i, question in enumerate(shared.questions):
            qid = question_id(i)
            logger.info("%s: %s", qid, question)
            batch.append({"question_id": qid, "request": question})
        return batch

    def make_item_shared(self, shared: BatchResearchRequest, params: dict[str, Any]) -> ResearchContext:
        return ResearchContext.from_config(
            params["request"], shared.config, question_id=params["question_id"]
        )

    def run_item(self, shared: BatchResearchRequest, params: dict[str, Any]) -> QuestionOutcome:
        context = self.make_item_shared(shared, params)
        try:
            self._orchestrate(context, {**self.params, **params})
        except (DeepResearchError, LLMError) as exc:
            logger.error("%s failed: %s", params["question_id"], exc)
            return QuestionOutcome(params["question_id"], context, error=str(exc))
        return QuestionOutcome(params["question_id"], context)

    def post(
        self,
        shared: BatchResearchRequest,
        prep_res: list[dict[str, Any]],
        exec_res: list[QuestionOutcome] | None,
    ) -> None:
        logger.info("=== PARALLEL RESEARCH COMPLETE ===")
        result = BatchResearchResult()
        for outcome in exec_res or []:
            result.outcomes[outcome.question_id] = outcome
            status = "completed with final report" if outcome.completed else "no final report"
            logger.info(
                "%s: %d conversations, %d iterations, %s",
                outcome.question_id,
                len(outcome.context.memory),
                outcome.context.current_depth,
                status,
            )
        if prep_res:
            logger.info(
                "Total: %d conversations across %d questions, %.1f iterations on average",
                result.total_conversations,
                len(prep_res),
                result.average_iterations,
            )
        shared.result = result
        return None

    # -- entry points ---------------------------------------------------------

    @classmethod
    def build(
        cls,
        config: ResearchConfig,
        clients: ResearchClients,
        answer_source: AnswerSource | None = None,
    ) -> ParallelResearchFlow:
        """Wire a batch flow over the parallel node variants."""
        config.validate()
        builder = ResearchFlowBuilder(config, clients).with_parallel(True)
        if answer_source is not None:
            builder.with_answer_source(answer_source)
        flow = build_flow(
            builder.build_nodes(),
            TRANSITIONS,
            start=INITIAL_RESEARCH,
            flow_cls=cls,
            max_workers=config.max_workers,
        )
        return flow  # type: ignore[return-value]

    @classmethod
    def start_batch(
        cls,
        questions: Sequence[str],
        config: ResearchConfig,
        clients: ResearchClients,
        answer_source: AnswerSource | None = None,
    ) -> BatchResearchResult:
        """Research every question concurrently and return the aggregate."""
        flow = cls.build(config, clients, answer_source=answer_source)
        request = BatchResearchRequest(questions=list(questions), config=config)
        logger.info("Starting parallel research for %d questions", len(request.questions))
        flow.run(request)
        return request.result or BatchResearchResult()

    @classmethod
    def comparative_research(
        cls,
        question: str,
        repositories: Sequence[str],
        config: ResearchConfig,
        clients: ResearchClients,
        answer_source: AnswerSource | None = None,
    ) -> BatchResearchResult:
        """Ask *question* once per repository, with semantic search only."""
        questions = [f"{question} (in repository {repo})" for repo in repositories]
        semantic_only = dataclasses.replace(config, search_modes=("semantic",))
        return cls.start_batch(questions, semantic_only, clients, answer_source=answer_source)

    @classmethod
    def temporal_research(
        cls,
        question: str,
        periods: Sequence[TimePeriod],
        config: ResearchConfig,
        clients: ResearchClients,
        answer_source: AnswerSource | None = None,
    ) -> BatchResearchResult:
        """Ask *question* once per time period."""
        questions = [f"{question} (during {period.display})" for period in periods]
        return cls.start_batch(questions, config, clients, answer_source=answer_source)


def format_batch_summary(result: BatchResearchResult) -> str:
    """Markdown summary of a batch: one section per question."""
    parts = [
        "# Parallel Research Summary\n",
        f"Processed {len(result.outcomes)} research questions",
        f"Total conversations analyzed: {result.total_conversations}\n",
    ]
    for qid, outcome in result.outcomes.items():
        context = outcome.context
        parts.append(f"## {qid.replace('_', ' ').capitalize()}")
        parts.append(f"**Question**: {context.request}")
        parts.append(f"**Conversations**: {len(context.memory)}")
        parts.append(f"**Search Queries**: {', '.join(context.memory.search_queries)}")
        if outcome.error is not None:
            parts.append(f"**Status**: Failed ({outcome.error})\n")
        elif context.final_report:
            parts.append("**Status**: Completed\n")
            parts.append(context.final_report)
        else:
            parts.append("**Status**: Incomplete")
        parts.append("\n---\n")
    return "\n".join(parts)
