"""Unit-of-work nodes for the workflow engine.

Every node follows a three-phase lifecycle:

``prep(shared)``
    Read the shared object and build the work item.
``exec(prep_res)``
    Side-effecting computation (external calls live here).
``post(shared, prep_res, exec_res)``
    Merge results into the shared object and return a routing action.

Actions are plain strings or ``str``-valued :class:`~enum.Enum` members;
``None`` selects the default (unkeyed) edge.  Batch variants run ``exec``
once per item; the parallel variant fans the items out over a bounded
thread pool and always hands ``post`` the results in input order.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "default"

DEFAULT_MAX_WORKERS = 4

T = TypeVar("T")
R = TypeVar("R")


def action_name(action: str | Enum | None) -> str:
    """Normalise a routing action to its edge key."""
    if action is None:
        return DEFAULT_ACTION
    if isinstance(action, Enum):
        return str(action.value)
    return str(action)


def parallel_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[R]:
    """Apply *fn* to every item on a bounded worker pool.

    Results are returned in input order once every worker has finished.
    The first exception raised by a worker propagates to the caller after
    the pool shuts down.
    """
    work = list(items)
    if not work:
        return []
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    workers = min(max_workers, len(work))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(fn, item) for item in work]
        return [future.result() for future in futures]


class BaseNode:
    """Base class for anything that can be placed in a :class:`Flow`."""

    def __init__(self) -> None:
        self.params: dict[str, Any] = {}
        self.successors: dict[str, BaseNode] = {}
        self.label: str | None = None

    @property
    def name(self) -> str:
        return self.label or type(self).__name__

    def set_params(self, params: dict[str, Any]) -> None:
        self.params = dict(params)

    def next(self, node: BaseNode, action: str | Enum | None = None) -> BaseNode:
        """Connect *node* as the successor for *action* and return it."""
        key = action_name(action)
        if key in self.successors:
            logger.warning(
                "%s: overwriting successor for action %r", self.name, key
            )
        self.successors[key] = node
        return node

    def __rshift__(self, other: BaseNode) -> BaseNode:
        return self.next(other)

    # -- lifecycle ------------------------------------------------------------

    def prep(self, shared: Any) -> Any:
        return None

    def exec(self, prep_res: Any) -> Any:
        return None

    def post(self, shared: Any, prep_res: Any, exec_res: Any) -> str | Enum | None:
        return None

    def _exec(self, prep_res: Any) -> Any:
        return self.exec(prep_res)

    def _run(self, shared: Any) -> str | Enum | None:
        prep_res = self.prep(shared)
        exec_res = self._exec(prep_res)
        return self.post(shared, prep_res, exec_res)

    def run(self, shared: Any) -> str | Enum | None:
        """Run this node alone, ignoring any successors."""
        if self.successors:
            logger.warning(
                "%s: run() does not follow successors; wrap the node in a Flow",
                self.name,
            )
        return self._run(shared)


class Node(BaseNode):
    """A node whose ``exec`` phase is retried on failure.

    Parameters
    ----------
    max_retries:
        Total number of ``exec`` attempts (1 means no retry).
    wait:
        Seconds to sleep between attempts.
    """

    def __init__(self, max_retries: int = 1, wait: float = 0.0) -> None:
        super().__init__()
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        self.max_retries = max_retries
        self.wait = wait
        self.cur_retry = 0

    def exec_fallback(self, prep_res: Any, exc: Exception) -> Any:
        """Called once every attempt has failed.  Re-raises by default."""
        raise exc

    def _exec(self, prep_res: Any) -> Any:
        for self.cur_retry in range(self.max_retries):
            try:
                return self.exec(prep_res)
            except Exception as exc:
                if self.cur_retry == self.max_retries - 1:
                    return self.exec_fallback(prep_res, exc)
                logger.warning(
                    "%s: exec attempt %d/%d failed: %s",
                    self.name,
                    self.cur_retry + 1,
                    self.max_retries,
                    exc,
                )
                if self.wait > 0:
                    time.sleep(self.wait)
        return None


class BatchNode(Node):
    """``prep`` returns a list of items; ``exec`` runs once per item."""

    def _exec(self, items: Any) -> list[Any]:
        return [super(BatchNode, self)._exec(item) for item in (items or [])]


class ParallelBatchNode(BatchNode):
    """Batch node whose per-item ``exec`` calls run on a thread pool.

    ``exec`` must not mutate the shared object: workers return plain
    values and ``post`` is the single place where results are merged.
    """

    def __init__(
        self,
        max_retries: int = 1,
        wait: float = 0.0,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        super().__init__(max_retries=max_retries, wait=wait)
        self.max_workers = max_workers

    def _exec(self, items: Any) -> list[Any]:
        run_item = super(BatchNode, self)._exec
        return parallel_map(run_item, items or [], self.max_workers)
