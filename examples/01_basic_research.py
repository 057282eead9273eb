#!/usr/bin/env python3
"""Example 01: One research run over an in-memory corpus.

Demonstrates:
- Seeding an InMemoryCorpus with issue conversations
- Driving every prompt with a ScriptedChatModel
- Running the flow with run_research and a static clarifying answer
- Rendering the report and run statistics with ResearchConsole

Run:
    PYTHONPATH=src python examples/01_basic_research.py
"""

from __future__ import annotations

import logging

from deep_research import ResearchClients, ResearchConfig, run_research
from deep_research.infrastructure.llm import LLMInvoker
from deep_research.presentation import ResearchConsole
from deep_research.services import StaticAnswerSource
from deep_research.testing import scripted_research_model, seeded_corpus
from deep_research.testing.mock_llm import FINAL_REPORT, SEMANTIC_QUERY


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -- Corpus and model -----------------------------------------------------
    corpus = seeded_corpus(12, topic="caching")
    model = scripted_research_model(
        overrides=[
            (SEMANTIC_QUERY, '{"query": "caching", "created_after": "2024-01-06"}'),
            (
                FINAL_REPORT,
                "# Caching in acme/widgets\n\n"
                "Caching was reworked in early 2024 "
                "(https://github.com/acme/widgets/issues/6).",
            ),
        ],
        claims=["Caching was reworked in early 2024"],
    )
    clients = ResearchClients(search=corpus, fetcher=corpus, llm=LLMInvoker.single(model))

    # -- Run ------------------------------------------------------------------
    config = ResearchConfig(
        collection="acme-widgets",
        top_k=5,
        max_depth=2,
        compaction_delay_seconds=0.0,
    )
    context = run_research(
        "How does caching work in acme/widgets?",
        config,
        clients,
        answer_source=StaticAnswerSource("1. acme/widgets only\n2. 2024"),
        report_sink=ResearchConsole(),
    )

    print(f"\nLLM calls: {len(model.calls())}, fetches: {len(corpus.fetches)}")
    print(f"Queries: {context.memory.search_queries}")


if __name__ == "__main__":
    main()
