"""Research services: planning, retrieval, verification, compaction, reporting."""

from deep_research.services.clarification import (
    AnswerSource,
    EditorAnswerSource,
    FileAnswerSource,
    StaticAnswerSource,
    answer_source_for,
)
from deep_research.services.compaction import CompactionPlan, compact, plan_compaction
from deep_research.services.planning import SearchPlanner, parse_semantic_plan
from deep_research.services.retrieval import (
    ConversationEnricher,
    ConversationRetriever,
    merge_results,
)
from deep_research.services.verification import ClaimChecker, parse_claims

__all__ = [
    "AnswerSource",
    "ClaimChecker",
    "CompactionPlan",
    "ConversationEnricher",
    "ConversationRetriever",
    "EditorAnswerSource",
    "FileAnswerSource",
    "SearchPlanner",
    "StaticAnswerSource",
    "answer_source_for",
    "compact",
    "merge_results",
    "parse_claims",
    "parse_semantic_plan",
    "plan_compaction",
]
