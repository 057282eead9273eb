"""Deep research over a corpus of code-collaboration conversations.

An iterative pipeline (initial search, clarifying questions, a bounded
plan/retrieve loop, report drafting, claim verification and context
compaction) built on a small node/flow engine that can also be compiled
into a LangGraph.
"""

__version__ = "0.1.0"

from deep_research.domain.context import ResearchContext
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.pipeline import (
    ParallelResearchFlow,
    ResearchFlowBuilder,
    build_research_flow,
    run_research,
)

__all__ = [
    "ParallelResearchFlow",
    "ResearchClients",
    "ResearchConfig",
    "ResearchContext",
    "ResearchFlowBuilder",
    "build_research_flow",
    "run_research",
]
