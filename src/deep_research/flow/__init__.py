"""Generic workflow engine: nodes, flows, batch and parallel variants."""

from deep_research.flow.flow import (
    BatchFlow,
    Flow,
    ParallelBatchFlow,
    TransitionTable,
    build_flow,
)
from deep_research.flow.node import (
    DEFAULT_ACTION,
    BaseNode,
    BatchNode,
    Node,
    ParallelBatchNode,
    action_name,
    parallel_map,
)

__all__ = [
    "DEFAULT_ACTION",
    "BaseNode",
    "BatchFlow",
    "BatchNode",
    "Flow",
    "Node",
    "ParallelBatchFlow",
    "ParallelBatchNode",
    "TransitionTable",
    "action_name",
    "build_flow",
    "parallel_map",
]
