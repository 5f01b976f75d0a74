"""
Execution Schema - the persisted record of one flow run.

This is what the host keeps in its execution history: per-node status,
output, error and timing, plus counts for list views.
"""

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field
from pydantic_core import to_jsonable_python

from forgeflow.graph.node import NodeResult, NodeStatus


class ExecutionStatus(StrEnum):
    """Outcome of a whole run."""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class ExecutionRecordResult(BaseModel):
    """One node's entry in an execution record."""

    node_id: str
    status: NodeStatus
    output: Any = None
    error: str | None = None
    duration_ms: float = 0.0
    timestamp: datetime | None = Field(default=None, description="When the node finished")

    model_config = {"extra": "allow"}

    @classmethod
    def from_node_result(cls, result: NodeResult) -> "ExecutionRecordResult":
        return cls(
            node_id=result.node_id,
            status=result.status,
            output=to_jsonable_python(result.output, fallback=str),
            error=result.error,
            duration_ms=result.duration_ms,
            timestamp=result.ended_at or result.started_at,
        )


class FlowExecution(BaseModel):
    """
    A complete, JSON-serializable record of a flow run.

    Counts are stored rather than derived so that history listings can drop
    the (potentially large) results and still show them.
    """

    id: str = Field(default_factory=lambda: f"exec-{uuid.uuid4().hex[:12]}")
    flow_id: str = ""
    flow_name: str = ""
    status: ExecutionStatus = ExecutionStatus.RUNNING
    results: list[ExecutionRecordResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = None
    error: str | None = None

    node_count: int = 0
    success_count: int = 0
    error_count: int = 0

    model_config = {"extra": "allow"}

    @classmethod
    def from_results(
        cls,
        results: list[NodeResult],
        status: ExecutionStatus,
        flow_id: str = "",
        flow_name: str = "",
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        error: str | None = None,
        execution_id: str | None = None,
    ) -> "FlowExecution":
        """Build a record from a run's NodeResult snapshot."""
        records = [ExecutionRecordResult.from_node_result(r) for r in results]
        kwargs: dict[str, Any] = {}
        if execution_id:
            kwargs["id"] = execution_id
        if started_at:
            kwargs["started_at"] = started_at
        return cls(
            flow_id=flow_id,
            flow_name=flow_name,
            status=status,
            results=records,
            ended_at=ended_at or datetime.now(UTC),
            error=error,
            node_count=len(records),
            success_count=sum(1 for r in records if r.status == NodeStatus.SUCCESS),
            error_count=sum(1 for r in records if r.status == NodeStatus.ERROR),
            **kwargs,
        )

    @property
    def duration_ms(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() * 1000

    def summary(self) -> "FlowExecution":
        """Copy without per-node results, for history listings."""
        return self.model_copy(update={"results": []})
