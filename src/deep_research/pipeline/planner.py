"""Planning step of the retrieval loop."""

from __future__ import annotations

import logging

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import ResearchAction
from deep_research.domain.values import SearchPlan
from deep_research.flow.node import Node
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.planning import SearchPlanner

logger = logging.getLogger(__name__)


class PlannerNode(Node):
    """Write the next iteration's search plans, or finish the loop.

    Routes ``default`` to the retriever with ``context.search_plans`` set,
    or ``final`` once the depth budget is spent and no unsupported claims
    are waiting.
    """

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__()
        self.clients = clients
        self.config = config
        self.planner = SearchPlanner(clients.llm)

    def prep(self, shared: ResearchContext) -> ResearchContext:
        logger.info(
            "=== PLANNING PHASE (depth %d/%d) ===", shared.current_depth, shared.max_depth
        )
        return shared

    def exec(self, prep_res: ResearchContext) -> list[SearchPlan] | None:
        return self.planner.next_plans(prep_res)

    def post(
        self,
        shared: ResearchContext,
        prep_res: ResearchContext,
        exec_res: list[SearchPlan] | None,
    ) -> ResearchAction:
        shared.search_plans = list(exec_res or [])
        if not shared.search_plans:
            logger.info("planner: no further queries, moving to the final report")
            return ResearchAction.FINAL
        return ResearchAction.DEFAULT
