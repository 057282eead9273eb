"""Domain layer: research context, hits, plans, enums and exceptions."""

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit, ResearchMemory, strip_conversation
from deep_research.domain.enums import ErrorCategory, ModelTier, ResearchAction, SearchMode
from deep_research.domain.exceptions import (
    ClarificationError,
    DeepResearchError,
    FetchError,
    FlowError,
    ResearchStateError,
    SearchError,
)
from deep_research.domain.values import (
    ClaimVerificationResult,
    ConversationMetadata,
    ModelAliases,
    OrderBy,
    QueryQualifiers,
    SearchPlan,
    SearchRequest,
    SearchResult,
    VerificationSummary,
)

__all__ = [
    "ClaimVerificationResult",
    "ClarificationError",
    "ConversationHit",
    "ConversationMetadata",
    "DeepResearchError",
    "ErrorCategory",
    "FetchError",
    "FlowError",
    "ModelAliases",
    "ModelTier",
    "OrderBy",
    "QueryQualifiers",
    "ResearchAction",
    "ResearchContext",
    "ResearchMemory",
    "ResearchStateError",
    "SearchError",
    "SearchMode",
    "SearchPlan",
    "SearchRequest",
    "SearchResult",
    "VerificationSummary",
    "strip_conversation",
]
