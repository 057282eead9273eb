"""Compile an engine :class:`~deep_research.flow.flow.Flow` into a LangGraph.

The compiled graph has one LangGraph node per engine node and one
conditional edge per node, keyed by the action its ``post`` phase returns.
The engine's shared object rides along in the ``shared`` channel and is
mutated in place exactly as under :meth:`Flow.run`, so both drivers reach
the same end state.  Going through LangGraph adds ``.stream()`` support
(one update per executed node) and the usual recursion limit.

LangGraph evaluates the ``FlowGraphState`` hints at runtime, so annotations
in this module are not postponed.
"""

import copy
import logging
import operator
import time
from collections.abc import Callable, Iterator
from typing import Annotated, Any, TypedDict

from langgraph.graph import END, START, StateGraph

from deep_research.domain.exceptions import FlowError
from deep_research.flow.flow import Flow
from deep_research.flow.node import DEFAULT_ACTION, BaseNode, action_name

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 200


class FlowGraphState(TypedDict):
    """State threaded through a compiled flow graph.

    ``shared`` is the engine's shared object (mutated in place), ``action``
    is the action emitted by the most recent node, and ``trace`` is an
    append-only record of executed node names.
    """

    shared: Any
    action: str
    trace: Annotated[list[str], operator.add]


def _unique_names(nodes: list[BaseNode]) -> dict[int, str]:
    names: dict[int, str] = {}
    taken: set[str] = set()
    for node in nodes:
        base = node.name
        candidate = base
        suffix = 2
        while candidate in taken:
            candidate = f"{base}_{suffix}"
            suffix += 1
        taken.add(candidate)
        names[id(node)] = candidate
    return names


def _make_step(node: BaseNode, name: str, params: dict[str, Any]) -> Callable[[FlowGraphState], dict[str, Any]]:
    """Wrap an engine node as a LangGraph node function."""

    def step(state: FlowGraphState) -> dict[str, Any]:
        runner = copy.copy(node)
        runner.set_params(params)
        action = action_name(runner._run(state["shared"]))
        logger.debug("flow graph: %s -> %s", name, action)
        return {"action": action, "trace": [name]}

    return step


def _make_router(node: BaseNode, name: str) -> Callable[[FlowGraphState], str]:
    def route(state: FlowGraphState) -> str:
        action = state["action"]
        if action in node.successors:
            return action
        if node.successors:
            logger.warning(
                "Flow ends: action %r not found among %s successors %s",
                action,
                name,
                sorted(node.successors),
            )
        return END

    return route


def compile_flow(flow: Flow, checkpointer: Any | None = None) -> Any:
    """Build and compile a LangGraph ``StateGraph`` mirroring *flow*.

    Parameters
    ----------
    flow:
        A wired flow with a start node.
    checkpointer:
        Optional LangGraph checkpointer.  Only usable when the shared object
        is serializable by the checkpointer.

    Returns
    -------
    CompiledStateGraph
        Ready for ``.invoke()`` or ``.stream()`` with a :class:`FlowGraphState`.
    """
    nodes = flow.nodes()
    if not nodes:
        raise FlowError("Cannot compile a flow without a start node")

    names = _unique_names(nodes)
    graph = StateGraph(FlowGraphState)

    for node in nodes:
        graph.add_node(names[id(node)], _make_step(node, names[id(node)], flow.params))

    graph.add_edge(START, names[id(flow.start_node)])

    for node in nodes:
        name = names[id(node)]
        if not node.successors:
            graph.add_edge(name, END)
            continue
        path_map: dict[str, str] = {
            action: names[id(target)] for action, target in node.successors.items()
        }
        path_map[END] = END
        graph.add_conditional_edges(name, _make_router(node, name), path_map)

    compile_kwargs: dict[str, Any] = {}
    if checkpointer is not None:
        compile_kwargs["checkpointer"] = checkpointer
    return graph.compile(**compile_kwargs)


def initial_state(shared: Any) -> FlowGraphState:
    return {"shared": shared, "action": DEFAULT_ACTION, "trace": []}


def run_compiled(
    graph: Any,
    shared: Any,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
) -> FlowGraphState:
    """Invoke a compiled flow graph to completion and return its final state."""
    return graph.invoke(
        initial_state(shared),
        config={"recursion_limit": recursion_limit},
    )


def stream_flow_events(
    graph: Any,
    shared: Any,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
) -> Iterator[dict[str, Any]]:
    """Yield one ``{"node", "action", "timestamp"}`` event per executed node."""
    stream = graph.stream(
        initial_state(shared),
        config={"recursion_limit": recursion_limit},
        stream_mode="updates",
    )
    for chunk in stream:
        for node_name, update in chunk.items():
            event: dict[str, Any] = {"node": node_name, "timestamp": time.time()}
            if isinstance(update, dict):
                event["action"] = update.get("action")
            yield event
