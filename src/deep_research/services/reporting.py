"""Report prompt inputs and final report formatting."""

from __future__ import annotations

import json
from collections.abc import Sequence

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit

FINDINGS_SEPARATOR = "\n\n---\n\n"


def format_finding(hit: ConversationHit) -> str:
    return (
        f"**Source**: {hit.url}\n"
        f"**Summary**: {hit.summary}\n"
        f"**Relevance Score**: {hit.score}\n\n"
        f"**Conversation Details**:\n"
        f"{json.dumps(hit.conversation, indent=2, default=str)}"
    )


def format_findings(hits: Sequence[ConversationHit]) -> str:
    """Every hit's summary, score and full payload, for the report prompt."""
    if not hits:
        return "No conversations were found."
    return FINDINGS_SEPARATOR.join(format_finding(hit) for hit in hits)


def format_unverified_addendum(unsupported_claims: Sequence[str]) -> str:
    lines = [
        f"**Note**: The following {len(unsupported_claims)} claims could not be "
        "fully verified against the available evidence:"
    ]
    lines.extend(f"{i}. {claim}" for i, claim in enumerate(unsupported_claims, 1))
    return "\n".join(lines)


def format_final_report(draft: str, unsupported_claims: Sequence[str] = ()) -> str:
    """The draft plus a disclosure of any claims that could not be verified."""
    report = draft.strip()
    if unsupported_claims:
        report = f"{report}{FINDINGS_SEPARATOR}{format_unverified_addendum(unsupported_claims)}"
    return report


def compaction_note(context: ResearchContext) -> str:
    if context.compaction_attempts > 0:
        return f" (after {context.compaction_attempts} context compaction attempts)"
    return ""


def research_summary_line(context: ResearchContext) -> str:
    """One-line account of the run, logged when the report is emitted."""
    verification = ""
    summary = context.claim_verification
    if summary is not None:
        verification = (
            f", {summary.total} claims verified "
            f"({len(summary.supported)} supported, {len(summary.unsupported)} unsupported)"
        )
    return (
        f"Research complete! Total conversations analyzed: {len(context.memory)}"
        f"{compaction_note(context)}{verification}"
    )
