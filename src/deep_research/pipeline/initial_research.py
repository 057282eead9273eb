"""First retrieval pass: a semantic search on the raw request."""

from __future__ import annotations

import logging

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit, ResearchMemory
from deep_research.domain.enums import ResearchAction, SearchMode
from deep_research.domain.exceptions import SearchError
from deep_research.domain.values import SearchRequest
from deep_research.flow.node import Node
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.planning import extract_qualifiers
from deep_research.services.retrieval import ConversationEnricher

logger = logging.getLogger(__name__)


class InitialResearchNode(Node):
    """Seed research memory with the top semantic matches for the request.

    Results that cannot be fetched are dropped.  The query log starts with
    the request itself and the notes start empty.
    """

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__()
        self.clients = clients
        self.config = config

    def prep(self, shared: ResearchContext) -> SearchRequest:
        logger.info("=== INITIAL RESEARCH PHASE ===")
        qualifiers = extract_qualifiers(shared.request)
        if qualifiers.repo or qualifiers.author:
            logger.debug(
                "initial_research: request qualifiers repo=%s author=%s",
                qualifiers.repo,
                qualifiers.author,
            )
        return SearchRequest(
            mode=SearchMode.SEMANTIC,
            query=shared.request,
            limit=shared.top_k,
            collection=shared.collection,
        )

    def exec(self, prep_res: SearchRequest) -> list[ConversationHit]:
        try:
            results = self.clients.search.search(prep_res)
        except SearchError as exc:
            logger.warning("initial_research: search failed, starting empty: %s", exc)
            return []
        logger.info("initial_research: %d results for the request", len(results))

        enricher = ConversationEnricher(
            self.clients,
            collection=self.config.collection,
            cache_path=self.config.cache_path,
        )
        hits = (enricher.enrich(result) for result in results[: prep_res.limit])
        return [hit for hit in hits if hit is not None]

    def post(
        self,
        shared: ResearchContext,
        prep_res: SearchRequest,
        exec_res: list[ConversationHit],
    ) -> ResearchAction:
        shared.memory = ResearchMemory(search_queries=[shared.request])
        shared.memory.add_hits(exec_res)
        logger.info("initial_research: seeded memory with %d conversations", len(shared.memory))
        return ResearchAction.DEFAULT
