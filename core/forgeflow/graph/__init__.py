"""Graph structures: Nodes, Edges, Variables, and the Workflow Executor."""

from forgeflow.graph.edge import BranchRule, FlowEdge, FlowGraph
from forgeflow.graph.errors import (
    CycleDetectedError,
    ExecutionCancelledError,
    ExpressionError,
    ForgeFlowError,
    GraphValidationError,
    HandlerDispatchWarning,
    HandlerExecutionError,
    InterpolationMiss,
    NoEntryPointError,
)
from forgeflow.graph.executor import JoinPolicy, WorkflowExecutor
from forgeflow.graph.interpolation import MISSING, interpolate_config, resolve_path
from forgeflow.graph.node import FlowNode, NodeCategory, NodeResult, NodeStatus, NodeType
from forgeflow.graph.safe_eval import safe_eval
from forgeflow.graph.variables import VariableStore

__all__ = [
    # Node
    "FlowNode",
    "NodeCategory",
    "NodeType",
    "NodeStatus",
    "NodeResult",
    # Edge
    "BranchRule",
    "FlowEdge",
    "FlowGraph",
    # Data
    "VariableStore",
    "MISSING",
    "interpolate_config",
    "resolve_path",
    "safe_eval",
    # Executor
    "JoinPolicy",
    "WorkflowExecutor",
    # Errors
    "ForgeFlowError",
    "GraphValidationError",
    "NoEntryPointError",
    "CycleDetectedError",
    "HandlerExecutionError",
    "ExecutionCancelledError",
    "ExpressionError",
    "HandlerDispatchWarning",
    "InterpolationMiss",
]
