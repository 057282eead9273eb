#!/usr/bin/env python3
"""Example 02: Comparative and temporal research in parallel.

Demonstrates:
- ParallelResearchFlow.comparative_research across two repositories
- ParallelResearchFlow.temporal_research across two time periods
- Printing batch summaries as a table and as Markdown

Run:
    PYTHONPATH=src python examples/02_parallel_research.py
"""

from __future__ import annotations

from deep_research import ParallelResearchFlow, ResearchClients, ResearchConfig
from deep_research.infrastructure.llm import LLMInvoker
from deep_research.pipeline import TimePeriod, format_batch_summary
from deep_research.presentation import ResearchConsole
from deep_research.services import StaticAnswerSource
from deep_research.testing import InMemoryCorpus, make_conversation, scripted_research_model


def build_corpus() -> InMemoryCorpus:
    corpus = InMemoryCorpus()
    for repo in ("acme/widgets", "acme/gadgets"):
        for i, month in enumerate(("01", "04", "08", "11"), start=1):
            url = f"https://github.com/{repo}/issues/{i}"
            corpus.add(
                make_conversation(
                    url,
                    title=f"Cache invalidation in {repo} ({month}/2024)",
                    body="Discussion of cache invalidation strategy.",
                    created_at=f"2024-{month}-01T00:00:00Z",
                ),
                summary=f"{repo} discussed cache invalidation in {month}/2024.",
            )
    return corpus


def main() -> None:
    corpus = build_corpus()
    model = scripted_research_model()
    clients = ResearchClients(search=corpus, fetcher=corpus, llm=LLMInvoker.single(model))
    config = ResearchConfig(max_depth=1, parallel=True, max_workers=2, compaction_delay_seconds=0.0)
    answers = StaticAnswerSource("No further constraints.")
    console = ResearchConsole()

    # -- Comparative ----------------------------------------------------------
    comparative = ParallelResearchFlow.comparative_research(
        "How is cache invalidation handled?",
        ["acme/widgets", "acme/gadgets"],
        config,
        clients,
        answer_source=answers,
    )
    console.print_batch(comparative)

    # -- Temporal -------------------------------------------------------------
    temporal = ParallelResearchFlow.temporal_research(
        "What changed in cache invalidation?",
        [
            TimePeriod(after="2024-01-01", before="2024-06-30", label="H1 2024"),
            TimePeriod(after="2024-07-01", label="H2 2024"),
        ],
        config,
        clients,
        answer_source=answers,
    )
    console.print_batch(temporal)
    print(format_batch_summary(temporal))


if __name__ == "__main__":
    main()
