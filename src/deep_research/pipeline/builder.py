"""Wiring of the research pipeline and its entry points.

The whole routing of a run lives in :data:`TRANSITIONS`::

    initial_research -> ask_clarifying -> planner <-> retriever
    planner/retriever --final--> final_report
    final_report --verify--> claim_verifier --ok--> final_report
                                            --fix--> planner
    final_report --compact--> context_compaction --retry--> final_report
    final_report --complete--> end

``ResearchFlowBuilder`` assembles the nodes fluently; the
module-level helpers cover the common cases.
"""

from __future__ import annotations

import logging
from typing import Any

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import ResearchAction
from deep_research.flow.flow import DEFAULT_MAX_STEPS, Flow, TransitionTable, build_flow
from deep_research.flow.langgraph_bridge import (
    DEFAULT_RECURSION_LIMIT,
    compile_flow,
    run_compiled,
)
from deep_research.flow.node import BaseNode
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.pipeline.clarifying import AskClarifyingNode
from deep_research.pipeline.claim_verifier import ClaimVerifierNode, ParallelClaimVerifierNode
from deep_research.pipeline.compaction import ContextCompactionNode
from deep_research.pipeline.end import EndNode
from deep_research.pipeline.final_report import FinalReportNode, ReportSink
from deep_research.pipeline.initial_research import InitialResearchNode
from deep_research.pipeline.planner import PlannerNode
from deep_research.pipeline.retriever import ParallelRetrieverNode, RetrieverNode
from deep_research.services.clarification import AnswerSource

logger = logging.getLogger(__name__)

INITIAL_RESEARCH = "initial_research"
ASK_CLARIFYING = "ask_clarifying"
PLANNER = "planner"
RETRIEVER = "retriever"
FINAL_REPORT = "final_report"
CLAIM_VERIFIER = "claim_verifier"
CONTEXT_COMPACTION = "context_compaction"
END = "end"

TRANSITIONS: TransitionTable = {
    (INITIAL_RESEARCH, ResearchAction.DEFAULT): ASK_CLARIFYING,
    (ASK_CLARIFYING, ResearchAction.DEFAULT): PLANNER,
    (PLANNER, ResearchAction.DEFAULT): RETRIEVER,
    (PLANNER, ResearchAction.FINAL): FINAL_REPORT,
    (RETRIEVER, ResearchAction.CONTINUE): PLANNER,
    (RETRIEVER, ResearchAction.DEFAULT): PLANNER,
    (RETRIEVER, ResearchAction.FINAL): FINAL_REPORT,
    (FINAL_REPORT, ResearchAction.VERIFY): CLAIM_VERIFIER,
    (FINAL_REPORT, ResearchAction.COMPACT): CONTEXT_COMPACTION,
    (FINAL_REPORT, ResearchAction.COMPLETE): END,
    (FINAL_REPORT, ResearchAction.DEFAULT): END,
    (CLAIM_VERIFIER, ResearchAction.OK): FINAL_REPORT,
    (CLAIM_VERIFIER, ResearchAction.FIX): PLANNER,
    (CONTEXT_COMPACTION, ResearchAction.RETRY): FINAL_REPORT,
    (CONTEXT_COMPACTION, ResearchAction.PROCEED_ANYWAY): FINAL_REPORT,
}


class ResearchFlowBuilder:
    """Fluent builder for the research flow.

    Example::

        flow = (
            ResearchFlowBuilder(config, clients)
            .with_answer_source(StaticAnswerSource("Focus on 2024"))
            .with_report_sink(console.show_run)
            .build()
        )
        flow.run(ResearchContext.from_config("Why did the cache regress?", config))
    """

    def __init__(self, config: ResearchConfig, clients: ResearchClients) -> None:
        self._config = config
        self._clients = clients
        self._answer_source: AnswerSource | None = None
        self._report_sink: ReportSink | None = None
        self._parallel = config.parallel
        self._max_steps = DEFAULT_MAX_STEPS

    def with_answer_source(self, source: AnswerSource) -> ResearchFlowBuilder:
        self._answer_source = source
        return self

    def with_report_sink(self, sink: ReportSink) -> ResearchFlowBuilder:
        self._report_sink = sink
        return self

    def with_parallel(self, parallel: bool = True) -> ResearchFlowBuilder:
        self._parallel = parallel
        return self

    def with_max_steps(self, max_steps: int) -> ResearchFlowBuilder:
        self._max_steps = max_steps
        return self

    def build_nodes(self) -> dict[str, BaseNode]:
        """Instantiate one node per pipeline stage, keyed by stage name."""
        config, clients = self._config, self._clients
        retriever_cls = ParallelRetrieverNode if self._parallel else RetrieverNode
        verifier_cls = ParallelClaimVerifierNode if self._parallel else ClaimVerifierNode
        return {
            INITIAL_RESEARCH: InitialResearchNode(clients, config),
            ASK_CLARIFYING: AskClarifyingNode(clients, config, answer_source=self._answer_source),
            PLANNER: PlannerNode(clients, config),
            RETRIEVER: retriever_cls(clients, config),
            FINAL_REPORT: FinalReportNode(clients, config, report_sink=self._report_sink),
            CLAIM_VERIFIER: verifier_cls(clients, config),
            CONTEXT_COMPACTION: ContextCompactionNode(clients, config),
            END: EndNode(),
        }

    def build(self) -> Flow:
        """Validate the config and wire the flow from :data:`TRANSITIONS`."""
        self._config.validate()
        flow = build_flow(
            self.build_nodes(),
            TRANSITIONS,
            start=INITIAL_RESEARCH,
            max_steps=self._max_steps,
        )
        logger.debug(
            "ResearchFlowBuilder: built %s flow with %d transitions",
            "parallel" if self._parallel else "sequential",
            len(TRANSITIONS),
        )
        return flow

    def build_graph(self, checkpointer: Any | None = None) -> Any:
        """Compile the flow into a LangGraph ``StateGraph``."""
        return compile_flow(self.build(), checkpointer=checkpointer)

    def __repr__(self) -> str:
        return (
            f"ResearchFlowBuilder(parallel={self._parallel}, "
            f"max_steps={self._max_steps}, "
            f"answer_source={type(self._answer_source).__name__ if self._answer_source else None})"
        )


def build_research_flow(
    config: ResearchConfig,
    clients: ResearchClients,
    answer_source: AnswerSource | None = None,
    report_sink: ReportSink | None = None,
) -> Flow:
    """Wire the research flow; parallel node variants when ``config.parallel``."""
    builder = ResearchFlowBuilder(config, clients)
    if answer_source is not None:
        builder.with_answer_source(answer_source)
    if report_sink is not None:
        builder.with_report_sink(report_sink)
    return builder.build()


def run_research(
    request: str,
    config: ResearchConfig,
    clients: ResearchClients,
    answer_source: AnswerSource | None = None,
    report_sink: ReportSink | None = None,
    context: ResearchContext | None = None,
) -> ResearchContext:
    """Run one research request to completion and return its context.

    Parameters
    ----------
    request:
        The research question.
    config:
        Run configuration; validated before the run starts.
    clients:
        Search provider, conversation fetcher and LLM invoker.
    answer_source:
        Source of clarifying answers; defaults to the configured Q&A file or
        an editor session.
    report_sink:
        Called with the context once the final report is ready.
    context:
        Pre-built context to run against instead of a fresh one.

    Raises
    ------
    LLMError
        When the report cannot be generated (fatal error, or recoverable
        errors outlasting compaction).
    """
    flow = build_research_flow(config, clients, answer_source=answer_source, report_sink=report_sink)
    shared = context if context is not None else ResearchContext.from_config(request, config)
    logger.info("Starting research: %s", request)
    flow.run(shared)
    return shared


def run_research_graph(
    request: str,
    config: ResearchConfig,
    clients: ResearchClients,
    answer_source: AnswerSource | None = None,
    report_sink: ReportSink | None = None,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
) -> tuple[ResearchContext, list[str]]:
    """Run a request through the compiled LangGraph.

    Returns
    -------
    tuple[ResearchContext, list[str]]
        The final context and the trace of executed stage names.
    """
    builder = ResearchFlowBuilder(config, clients)
    if answer_source is not None:
        builder.with_answer_source(answer_source)
    if report_sink is not None:
        builder.with_report_sink(report_sink)
    graph = builder.build_graph()
    shared = ResearchContext.from_config(request, config)
    final = run_compiled(graph, shared, recursion_limit=recursion_limit)
    return final["shared"], list(final["trace"])
