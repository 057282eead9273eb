"""The research context threaded through every node of a run.

``ResearchContext`` is created once per run by the driver and passed by
reference to each node.  Counters that act as circuit breakers (depth,
verification attempts, compaction attempts) are only advanced through the
methods below, which enforce their bounds.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entities import ConversationHit, ResearchMemory
from .enums import SearchMode
from .exceptions import ResearchStateError
from .values import ModelAliases, SearchPlan, VerificationSummary

if TYPE_CHECKING:
    from deep_research.infrastructure.config import ResearchConfig

MAX_VERIFICATION_ATTEMPTS = 1
MAX_COMPACTION_ATTEMPTS = 3


@dataclass
class ResearchContext:
    """Shared state of one research run.

    Attributes
    ----------
    request:
        The natural-language research request.
    clarifications:
        Raw clarifying Q&A text collected from the user.
    models:
        Model aliases for the fast and reasoning tiers.
    collection:
        Identifier of the corpus to search.
    top_k:
        Maximum results per search call.
    max_depth:
        Maximum number of retrieval iterations.
    search_modes:
        Modes the planner generates queries for.
    current_depth:
        Completed retrieval iterations; never exceeds ``max_depth``.
    memory:
        Hits, notes and the query log.
    search_plans:
        Plans written by the planner for the next retrieval iteration.
    unsupported_claims:
        Claims the last verification pass could not support.
    verification_attempts:
        Number of "fix" loops taken back to the planner.
    verification_passes:
        Number of claim-verification passes run.
    compaction_attempts:
        Number of compactions performed.
    compaction_baseline:
        Hit count pruning targets are taken against.  Set when compaction
        first fires and re-taken if research added hits since the last
        compaction.
    compacted_size:
        Hit count left by the last compaction.
    compaction_exhausted:
        Set once compaction gave up ("proceed anyway").
    """

    request: str
    clarifications: str = ""
    models: ModelAliases = field(default_factory=ModelAliases)
    collection: str = ""
    top_k: int = 5
    max_depth: int = 2
    search_modes: tuple[SearchMode, ...] = (SearchMode.SEMANTIC, SearchMode.KEYWORD)
    cache_path: str | None = None
    clarifying_qa: str | None = None
    current_depth: int = 0
    memory: ResearchMemory = field(default_factory=ResearchMemory)
    search_plans: list[SearchPlan] = field(default_factory=list)
    unsupported_claims: list[str] = field(default_factory=list)
    verification_attempts: int = 0
    verification_passes: int = 0
    compaction_attempts: int = 0
    compaction_baseline: int | None = None
    compacted_size: int | None = None
    compaction_exhausted: bool = False
    draft_answer: str | None = None
    claim_verification: VerificationSummary | None = None
    last_context_error: str | None = None
    final_report: str | None = None
    question_id: str | None = None

    @classmethod
    def from_config(cls, request: str, config: ResearchConfig, **overrides: object) -> ResearchContext:
        """Create a fresh context for *request* from a validated config."""
        values: dict[str, object] = {
            "request": request,
            "models": ModelAliases(fast=config.fast_model, reasoning=config.reasoning_model),
            "collection": config.collection,
            "top_k": config.top_k,
            "max_depth": config.max_depth,
            "search_modes": tuple(SearchMode(m) for m in config.search_modes),
            "cache_path": config.cache_path,
            "clarifying_qa": config.clarifying_qa,
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    # -- depth ----------------------------------------------------------------

    @property
    def depth_exhausted(self) -> bool:
        return self.current_depth >= self.max_depth

    def advance_depth(self) -> int:
        """Count one completed retrieval iteration, capped at ``max_depth``."""
        self.current_depth = min(self.current_depth + 1, self.max_depth)
        return self.current_depth

    # -- verification ---------------------------------------------------------

    @property
    def needs_verification(self) -> bool:
        """True while the current draft has not been through a verification pass.

        Each "fix" loop re-arms exactly one more pass, so the number of passes
        is bounded by ``1 + verification_attempts``.
        """
        return self.verification_passes <= self.verification_attempts

    def record_verification_attempt(self, max_attempts: int) -> int:
        if self.verification_attempts >= max_attempts:
            raise ResearchStateError(
                "Verification attempt budget exhausted",
                details={"attempts": self.verification_attempts, "max": max_attempts},
            )
        self.verification_attempts += 1
        return self.verification_attempts

    # -- compaction -----------------------------------------------------------

    def can_compact(self, max_attempts: int) -> bool:
        return not self.compaction_exhausted and self.compaction_attempts < max_attempts

    @property
    def next_compaction_baseline(self) -> int:
        """Baseline the next compaction attempt cuts against."""
        current = len(self.memory)
        if self.compaction_baseline is None:
            return current
        if self.compacted_size is not None and current > self.compacted_size:
            return current
        return self.compaction_baseline

    def record_compaction_attempt(
        self,
        max_attempts: int,
        kept: Sequence[ConversationHit] | None = None,
    ) -> int:
        """Count one compaction and, when given, keep only the *kept* hits."""
        if self.compaction_attempts >= max_attempts:
            raise ResearchStateError(
                "Compaction attempt budget exhausted",
                details={"attempts": self.compaction_attempts, "max": max_attempts},
            )
        self.compaction_baseline = self.next_compaction_baseline
        self.compaction_attempts += 1
        if kept is not None:
            self.memory.retain(kept)
            self.compacted_size = len(self.memory)
        return self.compaction_attempts
