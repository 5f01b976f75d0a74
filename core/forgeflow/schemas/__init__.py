"""Persisted data schemas."""

from forgeflow.schemas.execution import ExecutionRecordResult, ExecutionStatus, FlowExecution

__all__ = ["ExecutionRecordResult", "ExecutionStatus", "FlowExecution"]
