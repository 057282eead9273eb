"""Shared fixtures for the deep research test suite."""

from __future__ import annotations

import pytest

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ConversationHit
from deep_research.domain.enums import SearchMode
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.infrastructure.llm import LLMInvoker
from deep_research.services.clarification import StaticAnswerSource
from deep_research.testing import (
    InMemoryCorpus,
    ScriptedChatModel,
    make_conversation,
    scripted_research_model,
    seeded_corpus,
)

REQUEST = "How does caching work in widgets?"


def make_hit(
    i: int,
    summary: str | None = None,
    score: float = 0.5,
    mode: SearchMode = SearchMode.SEMANTIC,
) -> ConversationHit:
    """A hit for issue *i* with a full issue payload."""
    url = f"https://github.com/acme/widgets/issues/{i}"
    return ConversationHit(
        url=url,
        summary=f"Summary {i}" if summary is None else summary,
        score=score,
        search_mode=mode,
        conversation=make_conversation(
            url,
            title=f"Issue {i}",
            body="Long body " * 20,
            comments=[f"comment {i}a", f"comment {i}b"],
        ),
    )


# ---------------------------------------------------------------------------
# Configuration and context
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> ResearchConfig:
    """Two-iteration run with no compaction delay."""
    return ResearchConfig(
        collection="widgets",
        top_k=5,
        max_depth=2,
        fast_model="fast",
        reasoning_model="reasoning",
        compaction_delay_seconds=0.0,
    )


@pytest.fixture
def context(config: ResearchConfig) -> ResearchContext:
    return ResearchContext.from_config(REQUEST, config)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def corpus() -> InMemoryCorpus:
    """Ten caching issues, each with a corpus summary."""
    return seeded_corpus(10)


@pytest.fixture
def model() -> ScriptedChatModel:
    return scripted_research_model(claims=["Caching was reworked in 2024"])


@pytest.fixture
def clients(corpus: InMemoryCorpus, model: ScriptedChatModel) -> ResearchClients:
    return ResearchClients(search=corpus, fetcher=corpus, llm=LLMInvoker.single(model))


@pytest.fixture
def answers() -> StaticAnswerSource:
    return StaticAnswerSource("1. acme/widgets\n2. The last year")


@pytest.fixture
def hit_factory():
    return make_hit


@pytest.fixture
def clients_for(corpus: InMemoryCorpus):
    """Build clients over the shared corpus for a test-specific model."""

    def _build(model: ScriptedChatModel) -> ResearchClients:
        return ResearchClients(search=corpus, fetcher=corpus, llm=LLMInvoker.single(model))

    return _build
