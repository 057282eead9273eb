"""Tests for compiling engine flows into LangGraph state graphs."""

from __future__ import annotations

from typing import Any

import pytest

from deep_research.domain.exceptions import FlowError
from deep_research.flow.flow import Flow, build_flow
from deep_research.flow.langgraph_bridge import (
    compile_flow,
    initial_state,
    run_compiled,
    stream_flow_events,
)
from deep_research.flow.node import BaseNode


class Step(BaseNode):
    def __init__(self, tag: str, action: str | None = None) -> None:
        super().__init__()
        self.tag = tag
        self.action = action

    def post(self, shared: dict[str, Any], prep_res: Any, exec_res: Any) -> str | None:
        shared.setdefault("trail", []).append(self.tag)
        return self.action


class Loop(BaseNode):
    def post(self, shared: dict[str, Any], prep_res: Any, exec_res: Any) -> str:
        shared["n"] = shared.get("n", 0) + 1
        return "again" if shared["n"] < 3 else "done"


def _looping_flow() -> Flow:
    nodes = {"loop": Loop(), "finish": Step("finish")}
    table = {("loop", "again"): "loop", ("loop", "done"): "finish"}
    return build_flow(nodes, table, start="loop")


class TestCompileFlow:

    def test_graph_matches_engine_run(self) -> None:
        graph = compile_flow(_looping_flow())
        shared: dict[str, Any] = {}
        final = run_compiled(graph, shared)
        assert final["trace"] == ["loop", "loop", "loop", "finish"]
        assert final["shared"]["n"] == 3
        assert final["shared"]["trail"] == ["finish"]

    def test_engine_and_graph_agree(self) -> None:
        engine_shared: dict[str, Any] = {}
        _looping_flow().run(engine_shared)
        graph_final = run_compiled(compile_flow(_looping_flow()), {})
        assert graph_final["shared"] == engine_shared

    def test_unknown_action_ends_graph(self) -> None:
        a, b = Step("a", "nowhere"), Step("b")
        a.next(b, "somewhere")
        final = run_compiled(compile_flow(Flow(start=a)), {})
        assert final["trace"] == ["Step"]
        assert final["action"] == "nowhere"

    def test_duplicate_names_are_suffixed(self) -> None:
        a, b = Step("a", "go"), Step("b")
        a.next(b, "go")
        final = run_compiled(compile_flow(Flow(start=a)), {})
        assert final["trace"] == ["Step", "Step_2"]

    def test_flow_without_start(self) -> None:
        with pytest.raises(FlowError):
            compile_flow(Flow())

    def test_initial_state(self) -> None:
        shared = {"x": 1}
        state = initial_state(shared)
        assert state["shared"] is shared
        assert state["action"] == "default"
        assert state["trace"] == []


class TestStreamFlowEvents:

    def test_one_event_per_executed_node(self) -> None:
        events = list(stream_flow_events(compile_flow(_looping_flow()), {}))
        assert [event["node"] for event in events] == ["loop", "loop", "loop", "finish"]
        assert [event["action"] for event in events] == ["again", "again", "done", "default"]
        assert all("timestamp" in event for event in events)
