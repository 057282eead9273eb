"""Search execution, result merging and hit enrichment.

The retrieval nodes compose three steps:

1. :meth:`ConversationRetriever.search_plan` runs every query of one plan;
2. :func:`merge_results` merges results across plans by url;
3. :meth:`ConversationEnricher.enrich` fetches a new url and makes sure it
   has a summary.

Each step works on plain values and never touches the research context,
so steps 1 and 3 can run on worker threads.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from deep_research.domain.entities import ConversationHit
from deep_research.domain.enums import ModelTier, SearchMode
from deep_research.domain.exceptions import FetchError, SearchError
from deep_research.domain.values import (
    ConversationMetadata,
    SearchPlan,
    SearchRequest,
    SearchResult,
)
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.llm import LLMError
from deep_research.services.prompts import CONVERSATION_SUMMARY_PROMPT

logger = logging.getLogger(__name__)

# Upper bound on payload characters sent to the summarizer.
MAX_SUMMARY_INPUT_CHARS = 60_000


def extract_conversation_metadata(payload: dict | None) -> ConversationMetadata:
    return ConversationMetadata.from_payload(payload)


def _prefer(candidate: SearchResult, current: SearchResult) -> bool:
    if candidate.score != current.score:
        return candidate.score > current.score
    return (
        candidate.search_mode is SearchMode.SEMANTIC
        and current.search_mode is not SearchMode.SEMANTIC
    )


def merge_results(batches: Iterable[list[SearchResult]], top_k: int) -> list[SearchResult]:
    """Merge result lists by url.

    When a url appears more than once the higher score wins; on an exact tie
    the semantic-origin result wins.  First-seen order is kept and the merged
    list is truncated to *top_k*.
    """
    merged: dict[str, SearchResult] = {}
    for results in batches:
        for result in results:
            current = merged.get(result.url)
            if current is None or _prefer(result, current):
                merged[result.url] = result
    return list(merged.values())[:top_k]


def iteration_note(hits: list[ConversationHit]) -> str:
    lines = [f"{hit.url} (via {hit.search_mode.value}): {hit.summary}" for hit in hits]
    return "Research iteration: " + "\n".join(lines)


class ConversationRetriever:
    """Runs the searches of a :class:`SearchPlan` against the corpus.

    Parameters
    ----------
    clients:
        Research collaborators; only ``clients.search`` is used.
    collection:
        Corpus identifier passed with every request.
    top_k:
        Result limit per search call.
    """

    def __init__(self, clients: ResearchClients, collection: str, top_k: int) -> None:
        self.clients = clients
        self.collection = collection
        self.top_k = top_k

    def build_request(self, plan: SearchPlan, mode: SearchMode, query: str) -> SearchRequest:
        temporal = mode is SearchMode.SEMANTIC
        return SearchRequest(
            mode=mode,
            query=query,
            limit=self.top_k,
            created_after=plan.created_after if temporal else None,
            created_before=plan.created_before if temporal else None,
            order_by=plan.order_by if temporal else None,
            collection=self.collection,
        )

    def search_plan(self, plan: SearchPlan) -> list[SearchResult]:
        """Run every query of *plan*; a failed search contributes no results."""
        batches: list[list[SearchResult]] = []
        for mode, query in plan.queries():
            if not query:
                continue
            request = self.build_request(plan, mode, query)
            try:
                results = self.clients.search.search(request)
            except SearchError as exc:
                logger.warning("%s search for %r failed: %s", mode.value, query, exc)
                continue
            logger.info("%s search for %r returned %d results", mode.value, query, len(results))
            batches.append(
                [
                    SearchResult(
                        url=r.url,
                        score=0.0 if mode is SearchMode.KEYWORD else r.score,
                        summary=r.summary,
                        search_mode=mode,
                    )
                    for r in results
                ]
            )
        return merge_results(batches, self.top_k)


class ConversationEnricher:
    """Turns a search result into a :class:`ConversationHit`.

    Parameters
    ----------
    clients:
        Research collaborators (fetcher, search for summary probes, LLM).
    collection:
        Corpus identifier for summary probes.
    cache_path:
        Cache hint passed to the fetcher.
    """

    def __init__(
        self,
        clients: ResearchClients,
        collection: str = "",
        cache_path: str | None = None,
    ) -> None:
        self.clients = clients
        self.collection = collection
        self.cache_path = cache_path

    def enrich(self, result: SearchResult) -> ConversationHit | None:
        """Fetch and summarize one result; ``None`` if it cannot be fetched."""
        try:
            payload = self.clients.fetcher.fetch(result.url, self.cache_path)
        except FetchError as exc:
            logger.warning("Dropping %s: %s", result.url, exc)
            return None

        metadata = extract_conversation_metadata(payload)
        logger.info(
            "Fetched %s: %s (%s, %d comments)",
            metadata.kind,
            metadata.title,
            metadata.state,
            metadata.comments_count,
        )

        summary = result.summary.strip() or self.summary_for(result.url, payload)
        return ConversationHit(
            url=result.url,
            summary=summary,
            score=result.score,
            search_mode=result.search_mode,
            conversation=payload,
        )

    def summary_for(self, url: str, payload: dict) -> str:
        """Existing corpus summary, else an LLM summary, else the url itself."""
        existing = self.probe_summary(url)
        if existing:
            return existing
        generated = self.generate_summary(url, payload)
        return generated or url

    def probe_summary(self, url: str) -> str | None:
        request = SearchRequest(
            mode=SearchMode.SEMANTIC, query=url, limit=1, collection=self.collection
        )
        try:
            results = self.clients.search.search(request)
        except SearchError as exc:
            logger.debug("Summary probe for %s failed: %s", url, exc)
            return None
        for result in results:
            if result.url == url and result.summary.strip():
                return result.summary.strip()
        return None

    def generate_summary(self, url: str, payload: dict) -> str:
        conversation = json.dumps(payload, indent=2, default=str)[:MAX_SUMMARY_INPUT_CHARS]
        try:
            text = self.clients.llm.complete(
                CONVERSATION_SUMMARY_PROMPT,
                {"url": url, "conversation": conversation},
                ModelTier.FAST,
            )
        except LLMError as exc:
            logger.warning("Summary generation for %s failed: %s", url, exc)
            return ""
        return text.strip()
