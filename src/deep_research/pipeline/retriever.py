"""Retrieval step of the loop: search, merge, enrich, record."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit
from deep_research.domain.enums import ResearchAction
from deep_research.domain.values import SearchPlan, SearchResult
from deep_research.flow.node import Node, parallel_map
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.retrieval import (
    ConversationEnricher,
    ConversationRetriever,
    iteration_note,
    merge_results,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievalInput:
    plans: tuple[SearchPlan, ...]
    known_urls: frozenset[str]


class RetrieverNode(Node):
    """Execute the planned searches and add the new conversations to memory.

    Results already in memory are skipped before fetching.  After each
    iteration the depth counter advances and any pending unsupported claims
    are cleared.  Routes ``continue`` while depth remains and the iteration
    found something new, ``final`` otherwise.
    """

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__()
        self.clients = clients
        self.config = config
        self.retriever = ConversationRetriever(clients, config.collection, config.top_k)
        self.enricher = ConversationEnricher(
            clients, collection=config.collection, cache_path=config.cache_path
        )

    def prep(self, shared: ResearchContext) -> RetrievalInput:
        logger.info("=== RETRIEVAL PHASE (depth %d) ===", shared.current_depth + 1)
        return RetrievalInput(
            plans=tuple(shared.search_plans),
            known_urls=frozenset(shared.memory.urls()),
        )

    def new_results(self, batches: list[list[SearchResult]], known: frozenset[str]) -> list[SearchResult]:
        merged = merge_results(batches, self.config.top_k)
        fresh = [result for result in merged if result.url not in known]
        logger.info("retriever: %d merged results, %d new", len(merged), len(fresh))
        return fresh

    def exec(self, prep_res: RetrievalInput) -> list[ConversationHit]:
        batches = [self.retriever.search_plan(plan) for plan in prep_res.plans]
        fresh = self.new_results(batches, prep_res.known_urls)
        hits = [self.enricher.enrich(result) for result in fresh]
        return [hit for hit in hits if hit is not None]

    def post(
        self,
        shared: ResearchContext,
        prep_res: RetrievalInput,
        exec_res: list[ConversationHit],
    ) -> ResearchAction:
        shared.search_plans = []
        if not prep_res.plans:
            logger.warning("retriever: no search plans, moving to the final report")
            return ResearchAction.FINAL

        added = shared.memory.add_hits(exec_res)
        shared.memory.search_queries.append("; ".join(plan.describe() for plan in prep_res.plans))
        if added:
            shared.memory.notes.append(iteration_note(added))

        depth = shared.advance_depth()
        if shared.unsupported_claims:
            logger.info(
                "retriever: claims-targeted iteration done, clearing %d unsupported claims",
                len(shared.unsupported_claims),
            )
            shared.unsupported_claims = []

        logger.info(
            "retriever: added %d conversations (total %d), depth %d/%d",
            len(added),
            len(shared.memory),
            depth,
            shared.max_depth,
        )
        if added and not shared.depth_exhausted:
            return ResearchAction.CONTINUE
        return ResearchAction.FINAL


class ParallelRetrieverNode(RetrieverNode):
    """Retriever whose searches and fetches run on a bounded thread pool.

    Workers only return values; memory is updated in ``post`` on the
    calling thread, and results keep their input order.
    """

    def exec(self, prep_res: RetrievalInput) -> list[ConversationHit]:
        workers = self.config.max_workers
        batches = parallel_map(self.retriever.search_plan, prep_res.plans, workers)
        fresh = self.new_results(batches, prep_res.known_urls)
        hits = parallel_map(self.enricher.enrich, fresh, workers)
        return [hit for hit in hits if hit is not None]
