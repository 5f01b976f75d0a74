"""
ForgeFlow - a workflow engine for visual automation flows.

Flows are directed graphs of typed nodes (triggers, conditions, actions, AI
calls, loops, utilities and outputs). The engine walks the graph from its
entry points, resolves ``{{placeholders}}`` against run variables, dispatches
each node to a registered async handler and reports per-node progress.

Usage:
    from forgeflow import FlowGraph, WorkflowExecutor, build_default_registry

    executor = WorkflowExecutor(
        graph=FlowGraph.from_dict(flow_json),
        registry=build_default_registry(),
    )
    await executor.execute()
"""

from forgeflow.graph.edge import FlowEdge, FlowGraph
from forgeflow.graph.errors import (
    CycleDetectedError,
    ExecutionCancelledError,
    ForgeFlowError,
    HandlerExecutionError,
    NoEntryPointError,
)
from forgeflow.graph.executor import JoinPolicy, WorkflowExecutor
from forgeflow.graph.node import FlowNode, NodeResult, NodeStatus, NodeType
from forgeflow.handlers import HandlerContext, HandlerRegistry, build_default_registry
from forgeflow.runner import run_flow
from forgeflow.runtime.cancellation import CancellationToken

__version__ = "0.1.0"

__all__ = [
    "FlowNode",
    "FlowEdge",
    "FlowGraph",
    "NodeType",
    "NodeStatus",
    "NodeResult",
    "JoinPolicy",
    "WorkflowExecutor",
    "HandlerContext",
    "HandlerRegistry",
    "build_default_registry",
    "CancellationToken",
    "run_flow",
    "ForgeFlowError",
    "NoEntryPointError",
    "CycleDetectedError",
    "HandlerExecutionError",
    "ExecutionCancelledError",
]
