"""Clarifying questions, informed by what the initial search found."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit
from deep_research.domain.enums import ModelTier, ResearchAction
from deep_research.flow.node import Node
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.clarification import AnswerSource, answer_source_for
from deep_research.services.prompts import CLARIFYING_QUESTIONS_PROMPT
from deep_research.services.retrieval import extract_conversation_metadata

logger = logging.getLogger(__name__)


def initial_findings_digest(hits: Sequence[ConversationHit]) -> str:
    """One line per hit: title, url and summary."""
    if not hits:
        return "No conversations found yet."
    lines = []
    for hit in hits:
        title = extract_conversation_metadata(hit.conversation).title or hit.url
        lines.append(f"- {title} ({hit.url}): {hit.summary}")
    return "\n".join(lines)


class AskClarifyingNode(Node):
    """Ask the user clarifying questions and store the answered Q&A text.

    Parameters
    ----------
    clients:
        Research collaborators; the fast model writes the questions.
    config:
        Run configuration.
    answer_source:
        Where answers come from.  Defaults to the configured Q&A file, or an
        editor session when none is configured.
    """

    def __init__(
        self,
        clients: ResearchClients,
        config: ResearchConfig,
        answer_source: AnswerSource | None = None,
    ) -> None:
        super().__init__()
        self.clients = clients
        self.config = config
        self.answer_source = answer_source

    def prep(self, shared: ResearchContext) -> tuple[str, AnswerSource]:
        logger.info("=== CLARIFYING QUESTIONS PHASE ===")
        questions = self.clients.llm.complete(
            CLARIFYING_QUESTIONS_PROMPT,
            {
                "request": shared.request,
                "initial_findings": initial_findings_digest(shared.memory.hits),
            },
            ModelTier.FAST,
            alias=shared.models.fast,
        )
        source = self.answer_source or answer_source_for(shared)
        return questions.strip(), source

    def exec(self, prep_res: tuple[str, AnswerSource]) -> str:
        questions, source = prep_res
        return source.collect(questions)

    def post(
        self,
        shared: ResearchContext,
        prep_res: tuple[str, AnswerSource],
        exec_res: str,
    ) -> ResearchAction:
        shared.clarifications = exec_res.strip()
        logger.info("clarifying: collected %d characters of answers", len(shared.clarifications))
        return ResearchAction.DEFAULT
