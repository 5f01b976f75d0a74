"""
Handler Registry - explicit dispatch table from node type to handler.

Built-in kinds are keyed by the NodeType enum; hosts may register handlers for
any other string key as well.

Example:
    registry = HandlerRegistry()

    @registry.handler("custom_greet")
    async def greet(ctx: HandlerContext) -> str:
        return f"Hello {ctx.data['name']}"
"""

import logging
from collections.abc import Callable, Iterator

from forgeflow.graph.edge import FlowGraph
from forgeflow.handlers.types import NodeHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Maps node types to async handlers."""

    def __init__(self, handlers: dict[str, NodeHandler] | None = None):
        self._handlers: dict[str, NodeHandler] = {}
        for node_type, handler in (handlers or {}).items():
            self.register(node_type, handler)

    def register(self, node_type: str, handler: NodeHandler) -> None:
        """Register (or replace) the handler for a node type."""
        key = str(node_type)
        if key in self._handlers:
            logger.debug(f"Replacing handler for '{key}'")
        self._handlers[key] = handler

    def handler(self, node_type: str) -> Callable[[NodeHandler], NodeHandler]:
        """Decorator form of ``register``."""

        def decorator(func: NodeHandler) -> NodeHandler:
            self.register(node_type, func)
            return func

        return decorator

    def get(self, node_type: str) -> NodeHandler | None:
        return self._handlers.get(str(node_type))

    def __contains__(self, node_type: object) -> bool:
        return str(node_type) in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def node_types(self) -> list[str]:
        return sorted(self._handlers)

    def missing_for(self, graph: FlowGraph) -> list[str]:
        """
        Node types used by ``graph`` that have no handler.

        Returns:
            Sorted, de-duplicated list; empty when every node can dispatch.
        """
        return sorted({n.node_type for n in graph.nodes if n.node_type not in self})

    def merge(self, other: "HandlerRegistry") -> "HandlerRegistry":
        """New registry with ``other``'s handlers layered over this one's."""
        merged = HandlerRegistry(dict(self._handlers))
        for node_type in other:
            merged.register(node_type, other._handlers[node_type])
        return merged
