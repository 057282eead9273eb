"""The research pipeline: nodes, wiring and entry points."""

from deep_research.pipeline.batch import (
    BatchResearchRequest,
    BatchResearchResult,
    ParallelResearchFlow,
    TimePeriod,
    format_batch_summary,
)
from deep_research.pipeline.builder import (
    TRANSITIONS,
    ResearchFlowBuilder,
    build_research_flow,
    run_research,
    run_research_graph,
)
from deep_research.pipeline.clarifying import AskClarifyingNode
from deep_research.pipeline.claim_verifier import ClaimVerifierNode, ParallelClaimVerifierNode
from deep_research.pipeline.compaction import ContextCompactionNode
from deep_research.pipeline.end import EndNode
from deep_research.pipeline.final_report import FinalReportNode
from deep_research.pipeline.initial_research import InitialResearchNode
from deep_research.pipeline.planner import PlannerNode
from deep_research.pipeline.retriever import ParallelRetrieverNode, RetrieverNode

__all__ = [
    "TRANSITIONS",
    "AskClarifyingNode",
    "BatchResearchRequest",
    "BatchResearchResult",
    "ClaimVerifierNode",
    "ContextCompactionNode",
    "EndNode",
    "FinalReportNode",
    "InitialResearchNode",
    "ParallelClaimVerifierNode",
    "ParallelResearchFlow",
    "ParallelRetrieverNode",
    "PlannerNode",
    "ResearchFlowBuilder",
    "RetrieverNode",
    "TimePeriod",
    "build_research_flow",
    "format_batch_summary",
    "run_research",
    "run_research_graph",
]
