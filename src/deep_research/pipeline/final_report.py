"""Final report generation with context-overflow recovery."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import ErrorCategory, ModelTier, ResearchAction
from deep_research.flow.node import Node
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.infrastructure.llm import LLMError, classify_llm_error
from deep_research.services.prompts import FINAL_REPORT_PROMPT
from deep_research.services.reporting import (
    format_final_report,
    format_findings,
    research_summary_line,
)

logger = logging.getLogger(__name__)

ReportSink = Callable[[ResearchContext], None]


@dataclass(frozen=True)
class ReportRequest:
    """Prompt variables for one report call and the model alias to run it on."""

    variables: dict[str, str]
    model_alias: str = ""


@dataclass(frozen=True)
class ReportAttempt:
    """Outcome of one report call: a draft, or a recoverable failure."""

    draft: str | None = None
    error: LLMError | None = None
    category: ErrorCategory | None = None


class FinalReportNode(Node):
    """Draft the report from every finding, then verify or emit it.

    Context-too-large and rate-limit failures route ``compact`` while the
    compaction budget lasts; once it is spent the error is raised.  Any
    other failure is raised immediately.

    Parameters
    ----------
    clients:
        Research collaborators; the reasoning model writes the report.
    config:
        Run configuration.
    report_sink:
        Called with the context once the final report is set.
    """

    def __init__(
        self,
        clients: ResearchClients,
        config: ResearchConfig,
        report_sink: ReportSink | None = None,
    ) -> None:
        super().__init__()
        self.clients = clients
        self.config = config
        self.report_sink = report_sink

    def prep(self, shared: ResearchContext) -> ReportRequest:
        logger.info("=== FINAL REPORT PHASE ===")
        logger.info(
            "final_report: %d conversations, %d notes, %d queries",
            len(shared.memory),
            len(shared.memory.notes),
            len(shared.memory.search_queries),
        )
        for hit in shared.memory.hits:
            logger.debug("final_report: source %s (%s)", hit.url, hit.search_mode.value)
        variables = {
            "request": shared.request,
            "clarifications": shared.clarifications or "None provided",
            "all_findings": format_findings(shared.memory.hits),
        }
        return ReportRequest(variables, model_alias=shared.models.reasoning)

    def exec(self, prep_res: ReportRequest) -> ReportAttempt:
        try:
            draft = self.clients.llm.complete(
                FINAL_REPORT_PROMPT,
                prep_res.variables,
                ModelTier.REASONING,
                alias=prep_res.model_alias,
            )
        except LLMError as exc:
            category = classify_llm_error(exc)
            if not category.recoverable:
                raise
            return ReportAttempt(error=exc, category=category)
        return ReportAttempt(draft=draft)

    def post(
        self,
        shared: ResearchContext,
        prep_res: ReportRequest,
        exec_res: ReportAttempt,
    ) -> ResearchAction:
        if exec_res.error is not None:
            shared.last_context_error = str(exec_res.error)
            if shared.can_compact(self.config.max_compaction_attempts):
                logger.warning(
                    "final_report: %s (%s), compacting context",
                    exec_res.category.value if exec_res.category else "error",
                    exec_res.error,
                )
                return ResearchAction.COMPACT
            logger.error(
                "final_report: compaction budget spent after %d attempts, giving up",
                shared.compaction_attempts,
            )
            raise exec_res.error

        shared.draft_answer = exec_res.draft
        if shared.needs_verification:
            logger.info("final_report: draft ready, verifying claims")
            return ResearchAction.VERIFY

        shared.final_report = format_final_report(exec_res.draft or "", shared.unsupported_claims)
        logger.info("=== FINAL REPORT ===")
        logger.info(research_summary_line(shared))
        if self.report_sink is not None:
            self.report_sink(shared)
        return ResearchAction.COMPLETE
