"""Domain exceptions for the deep research pipeline.

All domain-specific exceptions inherit from ``DeepResearchError`` so
callers can catch the full family with a single ``except`` clause when needed.
LLM failures live in :mod:`deep_research.infrastructure.llm`.
"""

from __future__ import annotations

from typing import Any


class DeepResearchError(Exception):
    """Base exception for all deep research domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class FlowError(DeepResearchError):
    """Raised when a flow is mis-wired or exceeds its step budget."""


class ResearchStateError(DeepResearchError):
    """Raised when a research-context invariant would be violated.

    Examples: inserting a hit whose url is already in memory through
    ``retain``, or recording an attempt beyond its budget.
    """


class SearchError(DeepResearchError):
    """Raised by a search provider when one search request fails."""

    def __init__(
        self,
        message: str = "Search failed",
        query: str = "",
        mode: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.query = query
        self.mode = mode


class FetchError(DeepResearchError):
    """Raised by a conversation fetcher when one conversation cannot be loaded."""

    def __init__(
        self,
        message: str = "Fetch failed",
        url: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class ClarificationError(DeepResearchError):
    """Raised when clarifying answers cannot be collected.

    Either the pre-written Q&A file is missing or the editor exited with
    an error.
    """

    def __init__(
        self,
        message: str = "Could not collect clarifications",
        path: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
