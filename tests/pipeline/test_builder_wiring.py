"""Tests for the research flow wiring."""

from __future__ import annotations

import pytest

from deep_research.domain.enums import ResearchAction
from deep_research.flow.flow import Flow
from deep_research.infrastructure.clients import ResearchClients
from deep_research.infrastructure.config import ResearchConfig
from deep_research.pipeline import TRANSITIONS, ResearchFlowBuilder, build_research_flow
from deep_research.pipeline.builder import (
    CLAIM_VERIFIER,
    CONTEXT_COMPACTION,
    END,
    FINAL_REPORT,
    INITIAL_RESEARCH,
    PLANNER,
    RETRIEVER,
)


class TestTransitions:

    def test_every_action_is_a_research_action(self) -> None:
        for (_, action), _ in TRANSITIONS.items():
            assert isinstance(action, ResearchAction)

    @pytest.mark.parametrize(
        ("source", "action", "target"),
        [
            (PLANNER, ResearchAction.DEFAULT, RETRIEVER),
            (PLANNER, ResearchAction.FINAL, FINAL_REPORT),
            (RETRIEVER, ResearchAction.CONTINUE, PLANNER),
            (RETRIEVER, ResearchAction.FINAL, FINAL_REPORT),
            (FINAL_REPORT, ResearchAction.VERIFY, CLAIM_VERIFIER),
            (FINAL_REPORT, ResearchAction.COMPACT, CONTEXT_COMPACTION),
            (FINAL_REPORT, ResearchAction.COMPLETE, END),
            (CLAIM_VERIFIER, ResearchAction.OK, FINAL_REPORT),
            (CLAIM_VERIFIER, ResearchAction.FIX, PLANNER),
            (CONTEXT_COMPACTION, ResearchAction.RETRY, FINAL_REPORT),
            (CONTEXT_COMPACTION, ResearchAction.PROCEED_ANYWAY, FINAL_REPORT),
        ],
    )
    def test_edge(self, source: str, action: ResearchAction, target: str) -> None:
        assert TRANSITIONS[(source, action)] == target

    def test_end_has_no_successors(self) -> None:
        assert not any(source == END for source, _ in TRANSITIONS)


class TestResearchFlowBuilder:

    def test_build_wires_labelled_nodes(
        self, config: ResearchConfig, clients: ResearchClients
    ) -> None:
        flow = ResearchFlowBuilder(config, clients).build()
        assert isinstance(flow, Flow)
        assert flow.start_node is not None
        assert flow.start_node.label == INITIAL_RESEARCH
        labels = {node.label for node in flow.nodes()}
        assert labels == {source for source, _ in TRANSITIONS} | {END}

    def test_sequential_and_parallel_variants(
        self, config: ResearchConfig, clients: ResearchClients
    ) -> None:
        sequential = ResearchFlowBuilder(config, clients).build_nodes()
        parallel = ResearchFlowBuilder(config, clients).with_parallel().build_nodes()
        assert type(sequential[RETRIEVER]).__name__ == "RetrieverNode"
        assert type(parallel[RETRIEVER]).__name__ == "ParallelRetrieverNode"
        assert type(parallel[CLAIM_VERIFIER]).__name__ == "ParallelClaimVerifierNode"

    def test_max_steps(self, config: ResearchConfig, clients: ResearchClients) -> None:
        flow = ResearchFlowBuilder(config, clients).with_max_steps(50).build()
        assert flow.max_steps == 50

    def test_build_validates_config(self, clients: ResearchClients) -> None:
        with pytest.raises(ValueError, match="top_k"):
            build_research_flow(ResearchConfig(top_k=0), clients)

    def test_build_graph_compiles(self, config: ResearchConfig, clients: ResearchClients) -> None:
        graph = ResearchFlowBuilder(config, clients).build_graph()
        assert hasattr(graph, "invoke")
        assert hasattr(graph, "stream")

    def test_repr(self, config: ResearchConfig, clients: ResearchClients, answers) -> None:
        builder = ResearchFlowBuilder(config, clients).with_answer_source(answers)
        assert repr(builder) == (
            "ResearchFlowBuilder(parallel=False, max_steps=1000, "
            "answer_source=StaticAnswerSource)"
        )
