"""
Result/Progress Tracker - per-node results of one run.

Results are created lazily on a node's first transition and mutated in place.
After every mutation the observer receives a fresh snapshot: a list of copies
in first-transition order, so it can never alias the tracker's own state.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from forgeflow.graph.node import NodeResult

ProgressCallback = Callable[[list[NodeResult]], Awaitable[None] | None]


class ProgressTracker:
    """Holds the NodeResult of every node touched during a run."""

    def __init__(self, on_progress: ProgressCallback | None = None):
        self._on_progress = on_progress
        self._results: dict[str, NodeResult] = {}

    def get(self, node_id: str) -> NodeResult | None:
        return self._results.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    def results(self) -> list[NodeResult]:
        """Snapshot of all results, in first-transition order."""
        return [r.model_copy(deep=True) for r in self._results.values()]

    async def update(self, node_id: str, **changes: Any) -> NodeResult:
        """
        Apply field changes to a node's result and notify the observer.

        Example:
            await tracker.update("fetch", status=NodeStatus.RUNNING, started_at=now)
        """
        result = self._results.get(node_id)
        if result is None:
            result = NodeResult(node_id=node_id)
            self._results[node_id] = result
        for field, value in changes.items():
            setattr(result, field, value)

        await self._emit()
        return result

    async def _emit(self) -> None:
        if self._on_progress is None:
            return
        outcome = self._on_progress(self.results())
        if inspect.isawaitable(outcome):
            await outcome
