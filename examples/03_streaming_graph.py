#!/usr/bin/env python3
"""Example 03: Streaming a research run through LangGraph.

Demonstrates:
- Compiling the research flow with ResearchFlowBuilder.build_graph
- Streaming one event per executed stage with stream_flow_events
- Context compaction when the report prompt is too large

Run:
    PYTHONPATH=src python examples/03_streaming_graph.py
"""

from __future__ import annotations

from deep_research import ResearchClients, ResearchConfig, ResearchContext, ResearchFlowBuilder
from deep_research.flow.langgraph_bridge import stream_flow_events
from deep_research.infrastructure.llm import LLMInvoker
from deep_research.services import StaticAnswerSource
from deep_research.testing import scripted_research_model, seeded_corpus
from deep_research.testing.mock_llm import FINAL_REPORT


def report_that_fits(max_sources: int):
    """Fail with a context error until the prompt cites at most *max_sources* sources."""

    def respond(prompt: str) -> str:
        if prompt.count("**Source**:") > max_sources:
            raise RuntimeError("prompt is too long: 240000 tokens > 200000 maximum")
        return "# Report\n\nCompacted findings."

    return respond


def main() -> None:
    corpus = seeded_corpus(40)
    model = scripted_research_model(overrides=[(FINAL_REPORT, report_that_fits(20))])
    clients = ResearchClients(search=corpus, fetcher=corpus, llm=LLMInvoker.single(model))
    config = ResearchConfig(top_k=40, max_depth=0, compaction_delay_seconds=0.0)

    graph = (
        ResearchFlowBuilder(config, clients)
        .with_answer_source(StaticAnswerSource("Everything is in scope."))
        .build_graph()
    )
    context = ResearchContext.from_config("What do we know about caching?", config)

    for event in stream_flow_events(graph, context):
        print(f"{event['node']:<20} -> {event.get('action')}")

    print(f"\nCompaction attempts: {context.compaction_attempts}")
    print(f"Conversations kept: {len(context.memory)}")
    print(context.final_report)


if __name__ == "__main__":
    main()
