"""
Edge Protocol - How nodes connect in a flow.

Edges define:
1. Source and target nodes
2. The output port of the source they leave from (``source_handle``)

Whether an edge is followed depends on the *source node's* branching rule:

- plain:   every outgoing edge is followed
- boolean: (``condition_if``) the edge whose handle is "true"/"false" matching
           the node's boolean output
- switch:  (``condition_switch``) edges whose handle equals the output value,
           plus every edge leaving the "default" port
"""

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from forgeflow.graph.node import FlowNode, NodeType

logger = logging.getLogger(__name__)

DEFAULT_HANDLE = "default"


class BranchRule(StrEnum):
    """How a node's outgoing edges are selected once it succeeds."""

    PLAIN = "plain"
    BOOLEAN = "boolean"
    SWITCH = "switch"


BRANCH_RULES: dict[str, BranchRule] = {
    NodeType.CONDITION_IF: BranchRule.BOOLEAN,
    NodeType.CONDITION_SWITCH: BranchRule.SWITCH,
}


def branch_rule_for(node_type: str) -> BranchRule:
    """Branching rule of a node type; anything unlisted is plain."""
    return BRANCH_RULES.get(node_type, BranchRule.PLAIN)


class FlowEdge(BaseModel):
    """
    A directed connection between two nodes.

    Examples:
        # Plain edge
        FlowEdge(id="e1", source="trigger", target="fetch")

        # Branch of an if/else node
        FlowEdge(id="e2", source="check", target="notify", source_handle="true")
    """

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    source_handle: str | None = Field(
        default=None,
        alias="sourceHandle",
        description="Output port of the source: 'true'/'false', a case label, or 'default'",
    )

    model_config = {"extra": "allow", "populate_by_name": True}

    def should_traverse(self, rule: BranchRule, output: Any) -> bool:
        """
        Decide whether this edge is followed after its source produced ``output``.

        Args:
            rule: Branching rule of the source node
            output: The source node's output

        Returns:
            True if the target should be executed
        """
        if rule == BranchRule.BOOLEAN:
            return (self.source_handle == "true" and output is True) or (
                self.source_handle == "false" and output is False
            )

        if rule == BranchRule.SWITCH:
            # The default port fires even when a specific case also matched.
            return self.source_handle == output or self.source_handle == DEFAULT_HANDLE

        return True


class FlowGraph(BaseModel):
    """
    The run-time shape of a flow: nodes plus edges, nothing else.

    Node and edge order is significant: entry points run in node-list order
    and outgoing edges are visited in edge-list order.
    """

    id: str = ""
    name: str = ""
    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlowGraph":
        """Build a graph from saved-flow JSON (engine or canvas node shape)."""
        return cls.model_validate(data)

    def get_node(self, node_id: str) -> FlowNode | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def get_outgoing_edges(self, node_id: str) -> list[FlowEdge]:
        """All edges leaving a node, in edge-list order."""
        return [e for e in self.edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> list[FlowEdge]:
        """All edges entering a node."""
        return [e for e in self.edges if e.target == node_id]

    def dangling_edges(self) -> list[FlowEdge]:
        """Edges whose source or target is not a node of this graph."""
        ids = self.node_ids()
        return [e for e in self.edges if e.source not in ids or e.target not in ids]

    def without_dangling_edges(self) -> "FlowGraph":
        """Copy of the graph with dangling edges removed (each one logged)."""
        dangling = self.dangling_edges()
        if not dangling:
            return self
        for edge in dangling:
            logger.warning(
                f"Dropping edge '{edge.id}': {edge.source} -> {edge.target} "
                "references a missing node"
            )
        dropped = {id(e) for e in dangling}
        return self.model_copy(update={"edges": [e for e in self.edges if id(e) not in dropped]})

    def entry_nodes(self) -> list[FlowNode]:
        """Nodes with in-degree zero, in node-list order."""
        targets = {e.target for e in self.edges}
        return [n for n in self.nodes if n.id not in targets]

    def find_cycle(self) -> list[str] | None:
        """
        Find one cycle in the graph, ignoring branch conditions.

        Returns:
            The cycle as a node-id path whose first and last element are the
            same node, or None if the graph is acyclic.
        """
        adjacency: dict[str, list[str]] = {n.id: [] for n in self.nodes}
        for edge in self.edges:
            if edge.source in adjacency and edge.target in adjacency:
                adjacency[edge.source].append(edge.target)

        visited: set[str] = set()
        on_stack: list[str] = []
        on_stack_set: set[str] = set()

        # Iterative DFS so deep linear flows cannot hit the recursion limit
        for root in adjacency:
            if root in visited:
                continue
            stack: list[tuple[str, int]] = [(root, 0)]
            visited.add(root)
            on_stack.append(root)
            on_stack_set.add(root)
            while stack:
                node_id, idx = stack[-1]
                children = adjacency[node_id]
                if idx < len(children):
                    stack[-1] = (node_id, idx + 1)
                    child = children[idx]
                    if child in on_stack_set:
                        start = on_stack.index(child)
                        return on_stack[start:] + [child]
                    if child not in visited:
                        visited.add(child)
                        on_stack.append(child)
                        on_stack_set.add(child)
                        stack.append((child, 0))
                else:
                    stack.pop()
                    on_stack.pop()
                    on_stack_set.discard(node_id)
        return None

    def problems(self) -> list[str]:
        """
        Validate the graph structure.

        Returns:
            Human-readable problems; empty when the graph can run.
        """
        errors = []

        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen.add(node.id)

        for edge in self.dangling_edges():
            if edge.source not in seen:
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if edge.target not in seen:
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")

        clean = self.without_dangling_edges()
        if self.nodes and not clean.entry_nodes():
            errors.append("No entry point: every node has an incoming edge")

        cycle = clean.find_cycle()
        if cycle:
            errors.append(f"Cycle detected: {' -> '.join(cycle)}")

        return errors
