"""Shared fixtures: flow builders, recording handlers and a log collector."""

from __future__ import annotations

from typing import Any

import pytest

from forgeflow.graph.edge import FlowGraph
from forgeflow.graph.variables import VariableStore
from forgeflow.handlers.types import HandlerContext
from forgeflow.observability import clear_trace_context


class Recorder:
    """Builds handlers that remember every call they receive."""

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def returning(self, value: Any = None):
        async def handler(ctx: HandlerContext) -> Any:
            self.calls.append((ctx.node_id, dict(ctx.data)))
            return value

        return handler

    def raising(self, error: Exception):
        async def handler(ctx: HandlerContext) -> Any:
            self.calls.append((ctx.node_id, dict(ctx.data)))
            raise error

        return handler

    @property
    def node_ids(self) -> list[str]:
        return [node_id for node_id, _ in self.calls]


class LogCollector:
    """Log sink that keeps ``(level, message, node_id)`` lines."""

    def __init__(self):
        self.lines: list[tuple[str, str, str | None]] = []

    def __call__(self, level: str, message: str, node_id: str | None = None) -> None:
        self.lines.append((str(level), message, node_id))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m, _ in self.lines if level is None or lvl == level]


def build_flow(
    nodes: list[tuple[str, str] | tuple[str, str, dict[str, Any]]],
    edges: list[tuple[str, str] | tuple[str, str, str]] = (),
    flow_id: str = "flow-1",
    name: str = "Test flow",
) -> FlowGraph:
    """
    Build a graph from compact tuples.

    Nodes are ``(id, node_type[, config])``; edges are ``(source, target[, handle])``.
    """
    node_dicts = []
    for entry in nodes:
        node_id, node_type = entry[0], entry[1]
        config = entry[2] if len(entry) > 2 else {}
        node_dicts.append({"id": node_id, "nodeType": node_type, "config": config})

    edge_dicts = []
    for i, entry in enumerate(edges):
        edge = {"id": f"e{i}", "source": entry[0], "target": entry[1]}
        if len(entry) > 2:
            edge["sourceHandle"] = entry[2]
        edge_dicts.append(edge)

    return FlowGraph.from_dict(
        {"id": flow_id, "name": name, "nodes": node_dicts, "edges": edge_dicts}
    )


def build_context(
    data: dict[str, Any] | None = None,
    variables: dict[str, Any] | None = None,
    node_id: str = "node-1",
    on_log: LogCollector | None = None,
) -> HandlerContext:
    """HandlerContext for calling a handler directly."""
    return HandlerContext(
        data=data or {},
        variables=VariableStore(variables),
        on_log=on_log or LogCollector(),
        node_id=node_id,
    )


@pytest.fixture
def make_flow():
    return build_flow


@pytest.fixture
def make_context():
    return build_context


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def logs() -> LogCollector:
    return LogCollector()


@pytest.fixture(autouse=True)
def _clean_trace_context():
    yield
    clear_trace_context()
