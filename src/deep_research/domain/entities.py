"""Entities tracked in research memory.

``ConversationHit`` is one retrieved-and-enriched conversation, identified
by its url.  ``ResearchMemory`` owns the ordered hit list and is the only
place hits are inserted, which is how the url-uniqueness invariant holds
for the lifetime of a run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from .enums import SearchMode
from .exceptions import ResearchStateError

logger = logging.getLogger(__name__)

# Count fields kept on a detail-stripped payload, keyed by the list they count.
_COUNTED_LISTS = {
    "comments": "comments_count",
    "reviews": "reviews_count",
    "review_comments": "review_comments_count",
}

# Minimal fields kept per conversation kind when a payload is stripped.
_ESSENTIAL_FIELDS = {
    "issue": ("title", "state", "url", "created_at", "updated_at"),
    "pr": ("title", "state", "url", "created_at", "updated_at", "merged"),
    "discussion": ("title", "url", "created_at", "updated_at"),
}


def strip_conversation(payload: dict[str, Any]) -> dict[str, Any]:
    """Reduce a fetched payload to its minimal field set.

    Full bodies, comments and reviews are replaced by counts.  Stripping an
    already stripped payload returns an equal payload.
    """
    essential: dict[str, Any] = {}
    for kind, keep in _ESSENTIAL_FIELDS.items():
        body = payload.get(kind)
        if body:
            essential[kind] = {name: body.get(name) for name in keep}
            break

    for list_key, count_key in _COUNTED_LISTS.items():
        items = payload.get(list_key)
        if isinstance(items, list):
            essential[count_key] = len(items)
        else:
            essential[count_key] = int(payload.get(count_key, 0) or 0)
    return essential


@dataclass(frozen=True)
class ConversationHit:
    """One conversation in research memory.

    Attributes
    ----------
    url:
        Unique key of the conversation.
    summary:
        Summary text (from the corpus or generated).
    score:
        Relevance score; ``0.0`` for keyword-only hits.
    search_mode:
        Which search mode first surfaced the conversation.
    conversation:
        Opaque payload from the conversation fetcher.
    """

    url: str
    summary: str = ""
    score: float = 0.0
    search_mode: SearchMode = SearchMode.SEMANTIC
    conversation: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def has_summary(self) -> bool:
        return bool(self.summary.strip())

    def stripped(self) -> ConversationHit:
        """Return a copy with the payload reduced to its minimal field set."""
        if not self.conversation:
            return self
        return replace(self, conversation=strip_conversation(self.conversation))


class ResearchMemory:
    """Ordered, url-unique hit list plus research notes and the query log."""

    def __init__(
        self,
        hits: Iterable[ConversationHit] = (),
        notes: Iterable[str] = (),
        search_queries: Iterable[str] = (),
    ) -> None:
        self._hits: list[ConversationHit] = []
        self.notes: list[str] = list(notes)
        self.search_queries: list[str] = list(search_queries)
        self.add_hits(hits)

    @property
    def hits(self) -> tuple[ConversationHit, ...]:
        return tuple(self._hits)

    def __len__(self) -> int:
        return len(self._hits)

    def __contains__(self, url: object) -> bool:
        return any(hit.url == url for hit in self._hits)

    def urls(self) -> set[str]:
        return {hit.url for hit in self._hits}

    def add_hits(self, hits: Iterable[ConversationHit]) -> list[ConversationHit]:
        """Append hits whose url is not yet in memory.

        Returns
        -------
        list[ConversationHit]
            The hits actually added, in order.
        """
        known = self.urls()
        added: list[ConversationHit] = []
        for hit in hits:
            if hit.url in known:
                logger.debug("ResearchMemory: skipping duplicate hit %s", hit.url)
                continue
            known.add(hit.url)
            self._hits.append(hit)
            added.append(hit)
        return added

    def retain(self, hits: Iterable[ConversationHit]) -> None:
        """Replace the hit list with a subset (possibly stripped) of itself.

        Raises
        ------
        ResearchStateError
            If *hits* contains an unknown or repeated url.
        """
        kept = list(hits)
        known = self.urls()
        seen: set[str] = set()
        for hit in kept:
            if hit.url not in known:
                raise ResearchStateError(
                    f"Cannot retain unknown hit {hit.url}", details={"url": hit.url}
                )
            if hit.url in seen:
                raise ResearchStateError(
                    f"Cannot retain duplicate hit {hit.url}", details={"url": hit.url}
                )
            seen.add(hit.url)
        self._hits = kept
