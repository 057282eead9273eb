"""Domain enumerations for the deep research pipeline.

These enums capture the fixed vocabularies used across the package: search
modes, model tiers, the closed set of routing actions, and the categories
used to classify LLM failures.
"""

from enum import Enum


class SearchMode(str, Enum):
    """Search tool a plan (or a hit's origin) refers to."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"  # semantic + keyword sub-queries, paired


class ModelTier(str, Enum):
    """Model alias tiers used for LLM calls."""

    FAST = "fast"
    REASONING = "reasoning"


class ResearchAction(str, Enum):
    """Every routing action a research node may emit."""

    DEFAULT = "default"
    CONTINUE = "continue"
    FINAL = "final"
    VERIFY = "verify"
    COMPLETE = "complete"
    COMPACT = "compact"
    RETRY = "retry"
    PROCEED_ANYWAY = "proceed_anyway"
    OK = "ok"
    FIX = "fix"


class ErrorCategory(str, Enum):
    """Classification of an LLM failure."""

    CONTEXT_TOO_LARGE = "context_too_large"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"

    @property
    def recoverable(self) -> bool:
        return self is not ErrorCategory.FATAL
