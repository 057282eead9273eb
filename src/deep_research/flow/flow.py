"""Flows: directed graphs of nodes driven by routing actions.

A :class:`Flow` copies its start node, runs it, looks up the successor
registered for the returned action, and repeats until no edge matches.
Because a flow is itself a node, flows nest.

:func:`build_flow` wires a flow from a static transition table keyed by
``(node_name, action)`` so that the full routing of a pipeline can be read
(and tested) in one place.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from deep_research.domain.exceptions import FlowError
from deep_research.flow.node import (
    DEFAULT_MAX_WORKERS,
    BaseNode,
    action_name,
    parallel_map,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1000

TransitionTable = Mapping[tuple[str, str | Enum], str]


class Flow(BaseNode):
    """Run a graph of nodes starting at *start*.

    Parameters
    ----------
    start:
        The entry node.  May also be set later with :meth:`start`.
    max_steps:
        Circuit breaker on the number of node executions per orchestration.
    """

    def __init__(self, start: BaseNode | None = None, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        super().__init__()
        self.start_node = start
        self.max_steps = max_steps

    def start(self, node: BaseNode) -> BaseNode:
        self.start_node = node
        return node

    def get_next_node(self, current: BaseNode, action: str | Enum | None) -> BaseNode | None:
        key = action_name(action)
        nxt = current.successors.get(key)
        if nxt is None and current.successors:
            logger.warning(
                "Flow ends: action %r not found among %s successors %s",
                key,
                current.name,
                sorted(current.successors),
            )
        return nxt

    def _orchestrate(self, shared: Any, params: dict[str, Any] | None = None) -> str | Enum | None:
        if self.start_node is None:
            raise FlowError("Flow has no start node")

        node_params = dict(params) if params is not None else dict(self.params)
        current: BaseNode | None = copy.copy(self.start_node)
        last_action: str | Enum | None = None
        steps = 0

        while current is not None:
            steps += 1
            if steps > self.max_steps:
                raise FlowError(
                    f"Flow exceeded max_steps={self.max_steps}",
                    details={"last_node": current.name, "last_action": action_name(last_action)},
                )
            current.set_params(node_params)
            logger.debug("Flow step %d: %s", steps, current.name)
            last_action = current._run(shared)
            successor = self.get_next_node(current, last_action)
            current = copy.copy(successor) if successor is not None else None

        return last_action

    def _run(self, shared: Any) -> str | Enum | None:
        prep_res = self.prep(shared)
        last_action = self._orchestrate(shared)
        return self.post(shared, prep_res, last_action)

    def exec(self, prep_res: Any) -> Any:
        raise FlowError("A Flow has no exec phase; use run()")

    def post(self, shared: Any, prep_res: Any, exec_res: Any) -> str | Enum | None:
        return exec_res

    def nodes(self) -> list[BaseNode]:
        """Return every node reachable from the start node, breadth first."""
        if self.start_node is None:
            return []
        seen: list[BaseNode] = []
        queue = [self.start_node]
        while queue:
            node = queue.pop(0)
            if any(node is s for s in seen):
                continue
            seen.append(node)
            queue.extend(node.successors.values())
        return seen


class BatchFlow(Flow):
    """``prep`` returns a list of param dicts; the sub-graph runs once per dict."""

    def _run(self, shared: Any) -> str | Enum | None:
        batch_params = self.prep(shared) or []
        for params in batch_params:
            self._orchestrate(shared, {**self.params, **params})
        return self.post(shared, batch_params, None)


class ParallelBatchFlow(BatchFlow):
    """Batch flow whose sub-graph runs concurrently, one worker per item.

    Each worker runs against its own shared object built by
    :meth:`make_item_shared`; the parent shared object is only touched by
    ``post``, which receives the per-item shared objects in input order.
    """

    def __init__(
        self,
        start: BaseNode | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        super().__init__(start=start, max_steps=max_steps)
        self.max_workers = max_workers

    def make_item_shared(self, shared: Any, params: dict[str, Any]) -> Any:
        """Build the isolated shared object for one batch item."""
        return copy.deepcopy(shared)

    def run_item(self, shared: Any, params: dict[str, Any]) -> Any:
        """Run the sub-graph for one item and return what ``post`` receives for it."""
        item_shared = self.make_item_shared(shared, params)
        self._orchestrate(item_shared, {**self.params, **params})
        return item_shared

    def _run(self, shared: Any) -> str | Enum | None:
        batch_params = self.prep(shared) or []
        results = parallel_map(
            lambda params: self.run_item(shared, params), batch_params, self.max_workers
        )
        return self.post(shared, batch_params, results)


def build_flow(
    nodes: Mapping[str, BaseNode],
    transitions: TransitionTable,
    start: str,
    flow_cls: type[Flow] = Flow,
    **flow_kwargs: Any,
) -> Flow:
    """Wire *nodes* according to a static transition table.

    Parameters
    ----------
    nodes:
        Mapping of node name to node instance.  Each node's ``label`` is set
        to its name.
    transitions:
        ``{(source_name, action): target_name}``.
    start:
        Name of the entry node.
    flow_cls:
        Flow class to instantiate (e.g. a :class:`Flow` subclass).

    Raises
    ------
    FlowError
        If the table or *start* reference an unknown node name.
    """
    for name, node in nodes.items():
        node.label = name

    for (source, action), target in transitions.items():
        if source not in nodes:
            raise FlowError(f"Unknown source node {source!r} in transition table")
        if target not in nodes:
            raise FlowError(f"Unknown target node {target!r} in transition table")
        nodes[source].next(nodes[target], action)

    if start not in nodes:
        raise FlowError(f"Unknown start node {start!r}")
    return flow_cls(start=nodes[start], **flow_kwargs)
