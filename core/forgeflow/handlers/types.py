"""Handler contract: what a node handler receives and returns."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from forgeflow.graph.variables import VariableStore
from forgeflow.runtime.cancellation import CancellationToken


class LogLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


class LogCallback(Protocol):
    def __call__(self, level: LogLevel, message: str, node_id: str | None = None) -> None: ...


@dataclass
class HandlerContext:
    """
    Everything a handler may touch while running one node.

    ``data`` is the node's config with placeholders already resolved.
    ``variables`` is the live store of the run; writes are visible to every
    node that runs afterwards.
    """

    data: dict[str, Any]
    variables: VariableStore
    on_log: LogCallback
    node_id: str
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    def log(self, level: LogLevel, message: str) -> None:
        """Log a line attributed to this node."""
        self.on_log(level, message, self.node_id)


NodeHandler = Callable[[HandlerContext], Awaitable[Any]]
