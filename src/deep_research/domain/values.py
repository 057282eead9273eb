"""Value objects for the deep research pipeline.

All types here are frozen dataclasses, compared by value.  They describe
search requests and plans, search results, claim verification outcomes,
and small parsed views of conversation payloads.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .enums import ModelTier, SearchMode

# ---------------------------------------------------------------------------
# Model aliases
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelAliases:
    """Model names used for the fast and reasoning tiers.

    Empty strings mean "whatever the invoker was configured with".
    """

    fast: str = ""
    reasoning: str = ""

    def for_tier(self, tier: ModelTier) -> str:
        return self.fast if tier is ModelTier.FAST else self.reasoning


# ---------------------------------------------------------------------------
# Search plans and requests
# ---------------------------------------------------------------------------

_ORDER_KEYS = frozenset({"created_at"})
_ORDER_DIRECTIONS = frozenset({"asc", "desc"})


@dataclass(frozen=True)
class OrderBy:
    """Result ordering hint, e.g. ``created_at desc``."""

    key: str
    direction: str

    def __post_init__(self) -> None:
        if self.key not in _ORDER_KEYS:
            raise ValueError(f"order_by key must be one of {sorted(_ORDER_KEYS)}, got {self.key!r}")
        if self.direction not in _ORDER_DIRECTIONS:
            raise ValueError(
                f"order_by direction must be 'asc' or 'desc', got {self.direction!r}"
            )

    def __str__(self) -> str:
        return f"{self.key} {self.direction}"


@dataclass(frozen=True)
class SearchPlan:
    """A normalized, tool-tagged query descriptor consumed by the retriever.

    Semantic and keyword plans carry their text in ``query``.  Hybrid plans
    carry independently generated ``semantic_query`` and ``keyword_query``
    sub-queries; ``query`` then holds the semantic text for logging.
    Temporal and ordering hints only apply to semantic searches.
    """

    tool: SearchMode
    query: str
    semantic_query: str | None = None
    keyword_query: str | None = None
    created_after: str | None = None
    created_before: str | None = None
    order_by: OrderBy | None = None

    def __post_init__(self) -> None:
        if self.tool is SearchMode.HYBRID and not (self.semantic_query and self.keyword_query):
            raise ValueError("hybrid plans need both semantic_query and keyword_query")

    def queries(self) -> Iterator[tuple[SearchMode, str]]:
        """Yield the ``(mode, text)`` searches this plan expands to."""
        if self.tool is SearchMode.HYBRID:
            yield SearchMode.SEMANTIC, self.semantic_query or ""
            yield SearchMode.KEYWORD, self.keyword_query or ""
        else:
            yield self.tool, self.query

    def describe(self) -> str:
        """Query-log entry for this plan."""
        if self.tool is SearchMode.HYBRID:
            return f"hybrid: {self.semantic_query} | {self.keyword_query}"
        return f"{self.tool.value}: {self.query}"


@dataclass(frozen=True)
class SearchRequest:
    """One call to the search provider."""

    mode: SearchMode
    query: str
    limit: int
    created_after: str | None = None
    created_before: str | None = None
    order_by: OrderBy | None = None
    collection: str = ""

    def __post_init__(self) -> None:
        if self.mode is SearchMode.HYBRID:
            raise ValueError("search requests are semantic or keyword; expand hybrid plans first")
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")


@dataclass(frozen=True)
class SearchResult:
    """One row returned by the search provider.

    Keyword results carry ``score == 0`` and usually an empty summary.
    """

    url: str
    score: float = 0.0
    summary: str = ""
    search_mode: SearchMode = SearchMode.SEMANTIC


@dataclass(frozen=True)
class QueryQualifiers:
    """``repo:``/``author:`` qualifiers found in a free-text query."""

    semantic_query: str
    repo: str | None = None
    author: str | None = None


# ---------------------------------------------------------------------------
# Conversation payload views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversationMetadata:
    """The handful of payload fields the pipeline logs about a conversation."""

    kind: str  # "issue", "pull request", "discussion" or "unknown"
    title: str
    state: str
    comments_count: int

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> ConversationMetadata:
        payload = payload or {}
        if payload.get("issue"):
            kind = "issue"
        elif payload.get("pr"):
            kind = "pull request"
        elif payload.get("discussion"):
            kind = "discussion"
        else:
            kind = "unknown"
        body = payload.get("issue") or payload.get("pr") or payload.get("discussion") or {}
        comments = payload.get("comments")
        if isinstance(comments, list):
            count = len(comments)
        else:
            count = int(payload.get("comments_count", 0) or 0)
        return cls(
            kind=kind,
            title=body.get("title") or "Unknown title",
            state=body.get("state") or "unknown",
            comments_count=count,
        )


# ---------------------------------------------------------------------------
# Claim verification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClaimVerificationResult:
    """Outcome of checking one claim against retrieved evidence."""

    claim: str
    supported: bool
    evidence: str = ""
    error: str | None = None


@dataclass(frozen=True)
class VerificationSummary:
    """Aggregate of one claim-verification pass."""

    total: int = 0
    supported: tuple[str, ...] = ()
    unsupported: tuple[str, ...] = ()
    results: tuple[ClaimVerificationResult, ...] = field(default=(), repr=False)

    @classmethod
    def from_results(cls, results: list[ClaimVerificationResult]) -> VerificationSummary:
        return cls(
            total=len(results),
            supported=tuple(r.claim for r in results if r.supported),
            unsupported=tuple(r.claim for r in results if not r.supported),
            results=tuple(results),
        )

    @property
    def all_supported(self) -> bool:
        return not self.unsupported
