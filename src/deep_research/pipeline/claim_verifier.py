"""Claim verification of the draft report."""

from __future__ import annotations

import logging

from deep_research.domain.context import ResearchContext
from deep_research.domain.enums import ResearchAction
from deep_research.domain.values import ClaimVerificationResult
from deep_research.flow.node import BatchNode, ParallelBatchNode
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.services.verification import ClaimChecker

logger = logging.getLogger(__name__)


class ClaimVerifierNode(BatchNode):
    """Extract claims from the draft and check each one against the corpus.

    ``prep`` extracts the claims, ``exec`` checks one claim, and ``post``
    decides the route:

    * ``ok`` when there is no draft, no claims, or every claim is supported;
    * ``fix`` when claims are unsupported and a verification attempt remains,
      leaving them in ``context.unsupported_claims`` for the planner;
    * ``ok`` with the claims retained once the attempts are used up, so the
      report discloses them.
    """

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__()
        self.clients = clients
        self.config = config
        self.checker = ClaimChecker(
            clients,
            collection=config.collection,
            evidence_limit=config.evidence_limit,
            max_claims=config.max_claims,
        )

    def prep(self, shared: ResearchContext) -> list[str]:
        logger.info("=== CLAIM VERIFICATION PHASE ===")
        if not shared.draft_answer:
            logger.warning("claim_verifier: no draft to verify")
            return []
        claims = self.checker.extract_claims(shared.draft_answer)
        logger.info("claim_verifier: extracted %d claims", len(claims))
        return claims

    def exec(self, prep_res: str) -> ClaimVerificationResult:
        return self.checker.check(prep_res)

    def post(
        self,
        shared: ResearchContext,
        prep_res: list[str],
        exec_res: list[ClaimVerificationResult],
    ) -> ResearchAction:
        shared.verification_passes += 1
        if not prep_res:
            return ResearchAction.OK

        summary = ClaimChecker.summarize(exec_res)
        shared.claim_verification = summary
        if summary.all_supported:
            shared.unsupported_claims = []
            return ResearchAction.OK

        max_attempts = self.config.max_verification_attempts
        shared.unsupported_claims = list(summary.unsupported)
        if shared.verification_attempts < max_attempts:
            attempt = shared.record_verification_attempt(max_attempts)
            logger.info(
                "claim_verifier: %d unsupported claims, researching them (attempt %d/%d)",
                len(summary.unsupported),
                attempt,
                max_attempts,
            )
            return ResearchAction.FIX

        logger.warning(
            "claim_verifier: %d claims remain unsupported, proceeding with disclosure",
            len(summary.unsupported),
        )
        return ResearchAction.OK


class ParallelClaimVerifierNode(ClaimVerifierNode, ParallelBatchNode):
    """Claim verifier that checks claims concurrently on a bounded pool."""

    def __init__(self, clients: ResearchClients, config: ResearchConfig) -> None:
        super().__init__(clients, config)
        self.max_workers = config.max_workers
