"""Claim extraction and verification against corpus evidence.

A claim counts as supported only when the model answers exactly
``SUPPORTED``.  Ambiguous answers and errors both count as unsupported.
"""

from __future__ import annotations

import json
import logging

from deep_research.domain.enums import ModelTier, SearchMode
from deep_research.domain.exceptions import SearchError
from deep_research.domain.values import (
    ClaimVerificationResult,
    SearchRequest,
    VerificationSummary,
)
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.llm import LLMError
from deep_research.services.planning import strip_code_fences
from deep_research.services.prompts import EXTRACT_CLAIMS_PROMPT, VERIFY_CLAIM_PROMPT

logger = logging.getLogger(__name__)

NO_EVIDENCE = "No relevant evidence found."


def parse_claims(text: str, max_claims: int = 25) -> list[str]:
    """Parse a claim-extraction response into at most *max_claims* claims.

    The response must be a JSON array of strings, optionally wrapped in a
    code fence.  Anything else yields an empty list.
    """
    try:
        parsed = json.loads(strip_code_fences(text))
    except json.JSONDecodeError:
        logger.warning("Claim extraction returned non-JSON output, treating as no claims")
        return []
    if not isinstance(parsed, list):
        logger.warning("Claim extraction returned %s, not an array", type(parsed).__name__)
        return []
    claims = [item.strip() for item in parsed if isinstance(item, str) and item.strip()]
    return claims[:max_claims]


def is_supported(answer: str) -> bool:
    return answer.strip().upper() == "SUPPORTED"


class ClaimChecker:
    """Extract claims from a draft and check each one against evidence.

    Parameters
    ----------
    clients:
        Research collaborators (search for evidence, LLM for judgement).
    collection:
        Corpus identifier for evidence searches.
    evidence_limit:
        Results per evidence search.
    max_claims:
        Upper bound on extracted claims.
    """

    def __init__(
        self,
        clients: ResearchClients,
        collection: str = "",
        evidence_limit: int = 3,
        max_claims: int = 25,
    ) -> None:
        self.clients = clients
        self.collection = collection
        self.evidence_limit = evidence_limit
        self.max_claims = max_claims

    def extract_claims(self, draft: str) -> list[str]:
        try:
            text = self.clients.llm.complete(
                EXTRACT_CLAIMS_PROMPT,
                {"report": draft, "max_claims": self.max_claims},
                ModelTier.FAST,
            )
        except LLMError as exc:
            logger.warning("Claim extraction failed, treating as no claims: %s", exc)
            return []
        return parse_claims(text, self.max_claims)

    def gather_evidence(self, claim: str) -> str:
        request = SearchRequest(
            mode=SearchMode.SEMANTIC,
            query=claim,
            limit=self.evidence_limit,
            collection=self.collection,
        )
        try:
            results = self.clients.search.search(request)
        except SearchError as exc:
            return f"Error retrieving evidence: {exc}"
        if not results:
            return NO_EVIDENCE
        parts = [
            f"Evidence {i} (Score: {result.score:.3f}):\n"
            f"Source: {result.url}\n"
            f"Summary: {result.summary or 'No summary available'}"
            for i, result in enumerate(results, 1)
        ]
        return "\n\n---\n\n".join(parts)

    def check(self, claim: str) -> ClaimVerificationResult:
        """Gather evidence for *claim* and ask the model for a verdict."""
        return self.verify(claim, self.gather_evidence(claim))

    def verify(self, claim: str, evidence: str) -> ClaimVerificationResult:
        try:
            answer = self.clients.llm.complete(
                VERIFY_CLAIM_PROMPT,
                {"claim": claim, "evidence": evidence},
                ModelTier.FAST,
            )
        except LLMError as exc:
            logger.warning("Verification call failed for claim %r: %s", claim[:100], exc)
            return ClaimVerificationResult(
                claim=claim, supported=False, evidence=evidence, error=str(exc)
            )
        supported = is_supported(answer)
        logger.info("%s claim: %s", "SUPPORTED" if supported else "UNSUPPORTED", claim[:100])
        return ClaimVerificationResult(claim=claim, supported=supported, evidence=evidence)

    @staticmethod
    def summarize(results: list[ClaimVerificationResult]) -> VerificationSummary:
        summary = VerificationSummary.from_results(results)
        logger.info(
            "Verification complete: %d supported, %d unsupported",
            len(summary.supported),
            len(summary.unsupported),
        )
        return summary
