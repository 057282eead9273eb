"""Run configuration for the deep research pipeline.

``ResearchConfig`` governs a run and ``LLMSettings`` picks the chat-model
backend.  Both are frozen dataclasses with a ``validate()`` method that
raises ``ValueError`` on bad values, so one instance can be shared by every
node of a run and by concurrent batch runs.

A JSON config file has a ``research`` section and an optional ``llm``
section::

    {"research": {"collection": "acme", "max_depth": 3},
     "llm": {"provider": "openai"}}
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from deep_research.domain.context import MAX_COMPACTION_ATTEMPTS, MAX_VERIFICATION_ATTEMPTS

_VALID_SEARCH_MODES = frozenset({"semantic", "keyword", "hybrid"})


# ===================================================================== #
#  Research Configuration                                                #
# ===================================================================== #

@dataclass(frozen=True)
class ResearchConfig:
    """Parameters governing one research run.

    Attributes
    ----------
    collection:
        Identifier of the corpus searched by the search provider.
    top_k:
        Maximum results per search call (and per merged iteration).
    max_depth:
        Maximum number of retrieval iterations.
    search_modes:
        Modes the planner generates queries for (``semantic``, ``keyword``,
        ``hybrid``).
    fast_model:
        Model alias for light calls (questions, queries, claims, summaries).
    reasoning_model:
        Model alias for the final report.
    cache_path:
        Cache hint handed to the conversation fetcher.
    clarifying_qa:
        Path to a pre-written clarifying Q&A file.  When unset, answers are
        collected interactively in an editor.
    parallel:
        Use the parallel retriever and claim verifier.
    max_workers:
        Worker-pool size for parallel execution.
    evidence_limit:
        Results fetched per claim when gathering evidence.
    max_claims:
        Upper bound on claims extracted from a draft.
    max_verification_attempts:
        How many times verification may send the run back to the planner
        (at most 1).
    max_compaction_attempts:
        Cap on context compactions (at most 3).
    compaction_delay_seconds:
        Pause after a compaction before the report is retried.
    min_hits_for_compaction:
        Below this many hits compaction gives up and proceeds anyway.
    llm_timeout:
        Optional per-call LLM timeout in seconds.
    """

    collection: str = ""
    top_k: int = 5
    max_depth: int = 2
    search_modes: tuple[str, ...] = ("semantic", "keyword")
    fast_model: str = ""
    reasoning_model: str = ""
    cache_path: str | None = None
    clarifying_qa: str | None = None
    parallel: bool = False
    max_workers: int = 4
    evidence_limit: int = 3
    max_claims: int = 25
    max_verification_attempts: int = 1
    max_compaction_attempts: int = 3
    compaction_delay_seconds: float = 60.0
    min_hits_for_compaction: int = 4
    llm_timeout: float | None = None

    def __post_init__(self) -> None:
        # accept a bare string or enum members; store a tuple of plain values
        modes = self.search_modes
        if isinstance(modes, str):
            modes = (modes,)
        object.__setattr__(
            self, "search_modes", tuple(getattr(m, "value", m) for m in modes)
        )

    def validate(self) -> None:
        """Check every field; raises ``ValueError`` naming the first bad one."""
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if not self.search_modes:
            raise ValueError("search_modes must not be empty")
        unknown = set(self.search_modes) - _VALID_SEARCH_MODES
        if unknown:
            raise ValueError(
                f"search_modes must be drawn from {sorted(_VALID_SEARCH_MODES)}, "
                f"got {sorted(unknown)}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.evidence_limit < 1:
            raise ValueError(
                f"evidence_limit must be >= 1, got {self.evidence_limit}"
            )
        if self.max_claims < 0:
            raise ValueError(f"max_claims must be >= 0, got {self.max_claims}")
        if not 0 <= self.max_verification_attempts <= MAX_VERIFICATION_ATTEMPTS:
            raise ValueError(
                f"max_verification_attempts must be in 0..{MAX_VERIFICATION_ATTEMPTS}, "
                f"got {self.max_verification_attempts}"
            )
        if not 0 <= self.max_compaction_attempts <= MAX_COMPACTION_ATTEMPTS:
            raise ValueError(
                f"max_compaction_attempts must be in 0..{MAX_COMPACTION_ATTEMPTS}, "
                f"got {self.max_compaction_attempts}"
            )
        if self.compaction_delay_seconds < 0:
            raise ValueError(
                "compaction_delay_seconds must be >= 0, "
                f"got {self.compaction_delay_seconds}"
            )
        if self.min_hits_for_compaction < 1:
            raise ValueError(
                "min_hits_for_compaction must be >= 1, "
                f"got {self.min_hits_for_compaction}"
            )
        if self.llm_timeout is not None and self.llm_timeout <= 0:
            raise ValueError(f"llm_timeout must be > 0, got {self.llm_timeout}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["search_modes"] = list(self.search_modes)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  LLM Provider Configuration                                            #
# ===================================================================== #

_VALID_PROVIDERS = frozenset({"anthropic", "openai"})


@dataclass(frozen=True)
class LLMSettings:
    """Which chat-model backend serves the fast and reasoning tiers.

    Attributes
    ----------
    provider:
        LLM backend identifier (``"anthropic"`` or ``"openai"``).
    temperature:
        Sampling temperature for every call.
    max_tokens:
        Maximum tokens per response.
    """

    provider: str = "anthropic"
    temperature: float = 0.0
    max_tokens: int = 4096

    def validate(self) -> None:
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, "
                f"got '{self.provider}'"
            )
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(
                f"temperature must be in [0, 2], got {self.temperature}"
            )
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LLMSettings:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  JSON loading                                                          #
# ===================================================================== #

@dataclass(frozen=True)
class ConfigBundle:
    """Typed sections of a config file; unknown sections are kept raw."""

    research: ResearchConfig = field(default_factory=ResearchConfig)
    llm: LLMSettings = field(default_factory=LLMSettings)
    extra: dict[str, Any] = field(default_factory=dict)


def load_config_from_json(json_str: str) -> ConfigBundle:
    """Parse a JSON config document into validated config objects.

    Raises
    ------
    ValueError
        If the document is not a JSON object, a known section is not an
        object, or a section fails validation.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")

    sections: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for name, data in raw.items():
        if name in ("research", "llm"):
            if not isinstance(data, dict):
                raise ValueError(f"Config section {name!r} must be an object")
            sections[name] = data
        else:
            extra[name] = data

    return ConfigBundle(
        research=ResearchConfig.from_dict(sections.get("research", {})),
        llm=LLMSettings.from_dict(sections.get("llm", {})),
        extra=extra,
    )


def load_config_file(path: str | os.PathLike[str]) -> ConfigBundle:
    """Read and parse a JSON config file."""
    return load_config_from_json(Path(path).read_text(encoding="utf-8"))
