"""
Workflow Executor - runs a flow graph node by node.

The executor:
1. Finds the entry points (nodes nothing points at)
2. Runs each entry point, then follows its outgoing edges depth-first
3. Resolves ``{{placeholders}}`` in every node's config just before dispatch
4. Applies branch rules for if/else and switch nodes
5. Records a NodeResult per node and reports every change to the observer

Everything runs on one asyncio task, one handler at a time. The first branch
of a node finishes completely before its second branch starts.
"""

import logging
import uuid
import warnings
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from forgeflow.graph.edge import FlowGraph, branch_rule_for
from forgeflow.graph.errors import (
    CycleDetectedError,
    ExecutionCancelledError,
    HandlerDispatchWarning,
    HandlerExecutionError,
    NoEntryPointError,
)
from forgeflow.graph.interpolation import interpolate_config
from forgeflow.graph.node import FlowNode, NodeResult, NodeStatus
from forgeflow.graph.variables import VariableStore
from forgeflow.handlers.registry import HandlerRegistry
from forgeflow.handlers.types import HandlerContext, LogCallback, LogLevel
from forgeflow.observability import set_trace_context
from forgeflow.runtime.cancellation import CancellationToken
from forgeflow.runtime.tracker import ProgressCallback, ProgressTracker

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class JoinPolicy(StrEnum):
    """What happens when a node is reached by more than one path."""

    EACH_PATH = "each_path"  # run once per arriving path
    ONCE = "once"  # run on first arrival only


# Returned by _run when the node was cancelled before dispatch
_CANCELLED = object()


def _now() -> datetime:
    return datetime.now(UTC)


class WorkflowExecutor:
    """
    Executes one flow graph against a handler registry.

    Usage:
        executor = WorkflowExecutor(
            graph=FlowGraph.from_dict(flow_json),
            registry=build_default_registry(),
            on_progress=lambda results: print(len(results)),
        )
        await executor.execute()
        executor.results   # list[NodeResult]
    """

    def __init__(
        self,
        graph: FlowGraph,
        registry: HandlerRegistry,
        on_progress: ProgressCallback | None = None,
        on_log: LogCallback | None = None,
        variables: dict[str, Any] | None = None,
        join_policy: JoinPolicy | str = JoinPolicy.EACH_PATH,
        max_node_visits: int = 0,
        cancel_token: CancellationToken | None = None,
        run_id: str | None = None,
    ):
        """
        Initialize the executor.

        Args:
            graph: The flow to run; edges that reference missing nodes are dropped
            registry: Handlers keyed by node type
            on_progress: Observer called (sync or async) with a results snapshot
                after every status change
            on_log: Sink for run log lines ``(level, message, node_id)``
            variables: Initial variables, copied into a fresh store on each run
            join_policy: Re-execution rule for nodes with several incoming paths
            max_node_visits: Per-node execution cap under EACH_PATH (0 = unlimited)
            cancel_token: Token shared with handlers; ``abort()`` cancels it
            run_id: Identifier stamped on log records (generated when omitted)
        """
        self.graph = graph.without_dangling_edges()
        self.registry = registry
        self.join_policy = JoinPolicy(join_policy)
        self.max_node_visits = max_node_visits
        self.cancel_token = cancel_token or CancellationToken()
        self.run_id = run_id or uuid.uuid4().hex
        self.logger = logging.getLogger(__name__)

        self._on_progress = on_progress
        self._on_log = on_log
        self._initial_variables = dict(variables or {})
        self._reset()

    def _reset(self) -> None:
        self.variables = VariableStore(self._initial_variables)
        self.tracker = ProgressTracker(self._on_progress)
        self.node_visit_counts: dict[str, int] = {}
        self._active_path: list[str] = []

    @property
    def results(self) -> list[NodeResult]:
        """Snapshot of the current (or last) run's results."""
        return self.tracker.results()

    def abort(self, reason: str | None = None) -> None:
        """Request cancellation; the run stops at the next node boundary."""
        self.log(LogLevel.WARN, "⏹ Abort requested")
        self.cancel_token.cancel(reason)

    def log(self, level: LogLevel | str, message: str, node_id: str | None = None) -> None:
        """Send a line to the log sink and to the module logger."""
        if self._on_log is not None:
            self._on_log(level, message, node_id)
        self.logger.log(
            _PYTHON_LEVELS.get(level, logging.INFO),
            message,
            extra={"node_id": node_id, "event": str(level)},
        )

    async def execute(self) -> None:
        """
        Run the whole graph.

        Raises:
            NoEntryPointError: If every node has an incoming edge
            CycleDetectedError: If the graph contains a cycle
            HandlerExecutionError: If a handler raised (the run stops there)
            ExecutionCancelledError: If the run was aborted
        """
        self._reset()
        set_trace_context(run_id=self.run_id, flow_id=self.graph.id or None)

        try:
            self.log(
                LogLevel.INFO, f"🚀 Starting workflow execution: {self.graph.name or self.run_id}"
            )
            entry_nodes = self._preflight()
            self.log(LogLevel.INFO, f"🎯 Found {len(entry_nodes)} trigger node(s)")

            for node in entry_nodes:
                await self.execute_node(node.id)

            if self.cancel_token.is_cancelled:
                raise ExecutionCancelledError()

            self.log(LogLevel.SUCCESS, "🎉 Workflow execution completed")
        except ExecutionCancelledError:
            self.log(LogLevel.WARN, "⏹ Workflow execution cancelled")
            raise
        except Exception as e:
            self.log(LogLevel.ERROR, f"💥 Workflow execution failed: {e}")
            raise

    def _preflight(self) -> list[FlowNode]:
        """Structural checks that must pass before any handler runs."""
        entry_nodes = self.graph.entry_nodes()
        if not entry_nodes:
            raise NoEntryPointError()

        cycle = self.graph.find_cycle()
        if cycle:
            raise CycleDetectedError(cycle)

        for node_type in self.registry.missing_for(self.graph):
            message = (
                f"No handler registered for node type '{node_type}'; those nodes will be no-ops"
            )
            self.log(LogLevel.WARN, f"⚠ {message}")
            warnings.warn(message, HandlerDispatchWarning, stacklevel=3)

        return entry_nodes

    async def execute_node(self, node_id: str) -> None:
        """Run one node, then every successor its outgoing edges allow."""
        node = self.graph.get_node(node_id)
        if node is None:
            return

        if self.cancel_token.is_cancelled:
            await self._mark_cancelled(node.id)
            return

        if node.disabled:
            now = _now()
            await self.tracker.update(
                node.id, status=NodeStatus.SKIPPED, started_at=now, ended_at=now
            )
            self.log(LogLevel.WARN, f"⏭ Skipping disabled node: {node.display_name}", node.id)
            for edge in self.graph.get_outgoing_edges(node.id):
                await self.execute_node(edge.target)
            return

        if not self._admit(node):
            return

        if node.id in self._active_path:
            start = self._active_path.index(node.id)
            raise CycleDetectedError(self._active_path[start:] + [node.id])

        self._active_path.append(node.id)
        try:
            output = await self._run(node)
            if output is _CANCELLED:
                return

            rule = branch_rule_for(node.node_type)
            for edge in self.graph.get_outgoing_edges(node.id):
                if edge.should_traverse(rule, output):
                    await self.execute_node(edge.target)
        finally:
            self._active_path.pop()

    def _admit(self, node: FlowNode) -> bool:
        """Apply the join policy and visit cap; count the visit if admitted."""
        visits = self.node_visit_counts.get(node.id, 0)

        if self.join_policy == JoinPolicy.ONCE and visits > 0:
            self.logger.debug(f"Node '{node.id}' already ran; ignoring later arrival")
            return False

        if self.max_node_visits > 0 and visits >= self.max_node_visits:
            self.log(
                LogLevel.WARN,
                f"⊘ Node '{node.display_name}' visit limit reached "
                f"({visits}/{self.max_node_visits}), skipping",
                node.id,
            )
            return False

        self.node_visit_counts[node.id] = visits + 1
        return True

    async def _run(self, node: FlowNode) -> Any:
        """Interpolate, dispatch and record one node. Returns its output."""
        started_at = _now()
        await self.tracker.update(
            node.id,
            status=NodeStatus.RUNNING,
            started_at=started_at,
            ended_at=None,
            output=None,
            error=None,
        )
        self.log(LogLevel.INFO, f"▶ Executing: {node.display_name}", node.id)

        config = interpolate_config(node.config, self.variables.snapshot())

        if self.cancel_token.is_cancelled:
            await self.tracker.update(
                node.id, status=NodeStatus.CANCELLED, ended_at=started_at
            )
            return _CANCELLED

        handler = self.registry.get(node.node_type)
        try:
            if handler is None:
                self.log(
                    LogLevel.WARN,
                    f"⚠ No handler for node type '{node.node_type}', skipping dispatch",
                    node.id,
                )
                output = None
            else:
                ctx = HandlerContext(
                    data=config,
                    variables=self.variables,
                    on_log=self.log,
                    node_id=node.id,
                    cancel_token=self.cancel_token,
                )
                output = await handler(ctx)
        except Exception as e:
            message = str(e) or type(e).__name__
            await self.tracker.update(
                node.id, status=NodeStatus.ERROR, ended_at=_now(), error=message
            )
            self.log(LogLevel.ERROR, f"✗ {node.display_name} failed: {message}", node.id)
            raise HandlerExecutionError(node.id, message) from e

        self.variables.record_output(node.id, output)
        result = await self.tracker.update(
            node.id, status=NodeStatus.SUCCESS, ended_at=_now(), output=output
        )
        self.log(
            LogLevel.SUCCESS,
            f"✓ {node.display_name} completed ({result.duration_ms:.0f}ms)",
            node.id,
        )
        return output

    async def _mark_cancelled(self, node_id: str) -> None:
        now = _now()
        await self.tracker.update(
            node_id, status=NodeStatus.CANCELLED, started_at=now, ended_at=now
        )
