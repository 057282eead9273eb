"""Context compaction step, taken when the report prompt does not fit."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit
from deep_research.domain.enums import ResearchAction
from deep_research.flow.node import Node
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.compaction import CompactionPlan, compact, plan_compaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompactionInput:
    hits: tuple[ConversationHit, ...]
    attempt: int
    baseline: int
    exhausted: bool


@dataclass(frozen=True)
class CompactionOutcome:
    plan: CompactionPlan
    kept: list[ConversationHit]


class ContextCompactionNode(Node):
    """Shrink research memory and route back to the report.

    Routes ``retry`` after a compaction, or ``proceed_anyway`` (marking
    compaction as exhausted) when too few hits remain or the attempt budget
    is spent.
    """

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__()
        self.clients = clients
        self.config = config

    def prep(self, shared: ResearchContext) -> CompactionInput:
        logger.info("=== CONTEXT COMPACTION PHASE ===")
        if shared.last_context_error:
            logger.info("compaction: triggered by %s", shared.last_context_error)
        hits = shared.memory.hits
        return CompactionInput(
            hits=hits,
            attempt=shared.compaction_attempts + 1,
            baseline=shared.next_compaction_baseline,
            exhausted=not shared.can_compact(self.config.max_compaction_attempts),
        )

    def exec(self, prep_res: CompactionInput) -> CompactionOutcome | None:
        if prep_res.exhausted:
            return None
        if len(prep_res.hits) < self.config.min_hits_for_compaction:
            logger.warning(
                "compaction: only %d hits left (minimum %d)",
                len(prep_res.hits),
                self.config.min_hits_for_compaction,
            )
            return None
        plan = plan_compaction(len(prep_res.hits), prep_res.attempt, prep_res.baseline)
        return CompactionOutcome(plan=plan, kept=compact(prep_res.hits, plan))

    def post(
        self,
        shared: ResearchContext,
        prep_res: CompactionInput,
        exec_res: CompactionOutcome | None,
    ) -> ResearchAction:
        if exec_res is None:
            shared.compaction_exhausted = True
            logger.warning("compaction: cannot compact further, proceeding anyway")
            return ResearchAction.PROCEED_ANYWAY

        attempt = shared.record_compaction_attempt(
            self.config.max_compaction_attempts, kept=exec_res.kept
        )
        logger.info(
            "compaction: attempt %d/%d kept %d hits, removed %d%s",
            attempt,
            self.config.max_compaction_attempts,
            exec_res.plan.keep,
            exec_res.plan.removed,
            ", payloads stripped" if exec_res.plan.strip else "",
        )
        delay = self.config.compaction_delay_seconds
        if delay > 0:
            logger.info("compaction: waiting %.0fs before retrying the report", delay)
            time.sleep(delay)
        return ResearchAction.RETRY
