"""Tests for FlowNode, FlowEdge and FlowGraph."""

import pytest

from forgeflow.graph.edge import BranchRule, FlowEdge, FlowGraph, branch_rule_for
from forgeflow.graph.node import FlowNode, NodeCategory, NodeResult, NodeStatus, NodeType


class TestFlowNode:
    def test_engine_shape(self):
        node = FlowNode.model_validate(
            {"id": "n1", "nodeType": "action_delay", "category": "action", "config": {"a": 1}}
        )
        assert node.node_type == NodeType.ACTION_DELAY
        assert node.category == NodeCategory.ACTION
        assert node.config == {"a": 1}

    def test_canvas_shape_is_lifted_from_data(self):
        node = FlowNode.model_validate(
            {
                "id": "n1",
                "type": "custom",
                "position": {"x": 10, "y": 20},
                "data": {
                    "label": "Wait",
                    "category": "action",
                    "nodeType": "action_delay",
                    "icon": "clock",
                    "config": {"duration": 10},
                },
            }
        )
        assert node.node_type == "action_delay"
        assert node.label == "Wait"
        assert node.display_name == "Wait"
        assert node.config == {"duration": 10}

    def test_canvas_shape_falls_back_to_type(self):
        node = FlowNode.model_validate({"id": "n1", "type": "util_string", "data": {}})
        assert node.node_type == "util_string"
        assert node.config == {}

    def test_display_name_defaults_to_id(self):
        assert FlowNode(id="n1", node_type="x").display_name == "n1"

    @pytest.mark.parametrize(
        "config,disabled",
        [({"disabled": True}, True), ({"disabled": "true"}, False), ({}, False)],
    )
    def test_disabled_requires_literal_true(self, config, disabled):
        assert FlowNode(id="n", node_type="x", config=config).disabled is disabled


class TestNodeResult:
    def test_duration_is_zero_until_finished(self):
        assert NodeResult(node_id="a").duration_ms == 0.0

    def test_duration_in_milliseconds(self):
        from datetime import datetime, timedelta

        start = datetime(2024, 1, 1, 12, 0, 0)
        result = NodeResult(
            node_id="a", started_at=start, ended_at=start + timedelta(milliseconds=250)
        )
        assert result.duration_ms == pytest.approx(250.0)

    def test_terminal_statuses(self):
        assert not NodeResult(node_id="a", status=NodeStatus.RUNNING).is_terminal
        assert NodeResult(node_id="a", status=NodeStatus.CANCELLED).is_terminal

    def test_duration_is_serialized(self):
        assert "duration_ms" in NodeResult(node_id="a").model_dump()


class TestFlowEdge:
    def test_source_handle_alias(self):
        edge = FlowEdge.model_validate(
            {"id": "e", "source": "a", "target": "b", "sourceHandle": "true"}
        )
        assert edge.source_handle == "true"

    def test_plain_edges_always_traverse(self):
        edge = FlowEdge(id="e", source="a", target="b")
        assert edge.should_traverse(BranchRule.PLAIN, None)
        assert edge.should_traverse(BranchRule.PLAIN, False)

    def test_boolean_edges_match_output(self):
        true_edge = FlowEdge(id="t", source="c", target="x", source_handle="true")
        false_edge = FlowEdge(id="f", source="c", target="y", source_handle="false")

        assert true_edge.should_traverse(BranchRule.BOOLEAN, True)
        assert not true_edge.should_traverse(BranchRule.BOOLEAN, False)
        assert false_edge.should_traverse(BranchRule.BOOLEAN, False)
        assert not false_edge.should_traverse(BranchRule.BOOLEAN, True)

    def test_boolean_rule_needs_real_booleans(self):
        true_edge = FlowEdge(id="t", source="c", target="x", source_handle="true")
        assert not true_edge.should_traverse(BranchRule.BOOLEAN, 1)
        unlabeled = FlowEdge(id="u", source="c", target="x")
        assert not unlabeled.should_traverse(BranchRule.BOOLEAN, True)

    def test_switch_edges(self):
        case = FlowEdge(id="c", source="s", target="x", source_handle="red")
        default = FlowEdge(id="d", source="s", target="y", source_handle="default")

        assert case.should_traverse(BranchRule.SWITCH, "red")
        assert not case.should_traverse(BranchRule.SWITCH, "blue")
        assert default.should_traverse(BranchRule.SWITCH, "red")
        assert default.should_traverse(BranchRule.SWITCH, "default")

    def test_branch_rules_by_node_type(self):
        assert branch_rule_for(NodeType.CONDITION_IF) == BranchRule.BOOLEAN
        assert branch_rule_for("condition_switch") == BranchRule.SWITCH
        assert branch_rule_for("action_http") == BranchRule.PLAIN
        assert branch_rule_for("custom_anything") == BranchRule.PLAIN


class TestFlowGraph:
    def test_entry_nodes_in_node_order(self, make_flow):
        graph = make_flow([("b", "x"), ("a", "x"), ("c", "x")], [("b", "c")])
        assert [n.id for n in graph.entry_nodes()] == ["b", "a"]

    def test_edge_lookup_preserves_order(self, make_flow):
        graph = make_flow([("a", "x"), ("b", "x"), ("c", "x")], [("a", "c"), ("a", "b")])
        assert [e.target for e in graph.get_outgoing_edges("a")] == ["c", "b"]
        assert [e.source for e in graph.get_incoming_edges("b")] == ["a"]

    def test_find_cycle(self, make_flow):
        acyclic = make_flow([("a", "x"), ("b", "x"), ("c", "x")], [("a", "b"), ("a", "c")])
        assert acyclic.find_cycle() is None

        self_loop = make_flow([("a", "x")], [("a", "a")])
        assert self_loop.find_cycle() == ["a", "a"]

        cyclic = make_flow(
            [("a", "x"), ("b", "x"), ("c", "x")], [("a", "b"), ("b", "c"), ("c", "b")]
        )
        assert cyclic.find_cycle() == ["b", "c", "b"]

    def test_find_cycle_on_deep_linear_flow(self, make_flow):
        nodes = [(f"n{i}", "x") for i in range(3000)]
        edges = [(f"n{i}", f"n{i + 1}") for i in range(2999)]
        assert make_flow(nodes, edges).find_cycle() is None

    def test_without_dangling_edges(self, make_flow):
        graph = make_flow([("a", "x"), ("b", "x")], [("a", "b"), ("a", "ghost")])

        clean = graph.without_dangling_edges()

        assert [(e.source, e.target) for e in clean.edges] == [("a", "b")]
        assert len(graph.edges) == 2

    def test_without_dangling_edges_returns_self_when_clean(self, make_flow):
        graph = make_flow([("a", "x"), ("b", "x")], [("a", "b")])
        assert graph.without_dangling_edges() is graph

    def test_problems_lists_every_issue(self):
        graph = FlowGraph.from_dict(
            {
                "nodes": [
                    {"id": "a", "nodeType": "x"},
                    {"id": "a", "nodeType": "x"},
                    {"id": "b", "nodeType": "x"},
                ],
                "edges": [
                    {"id": "e1", "source": "a", "target": "b"},
                    {"id": "e2", "source": "b", "target": "a"},
                    {"id": "e3", "source": "b", "target": "ghost"},
                ],
            }
        )

        problems = graph.problems()

        assert "Duplicate node ID: 'a'" in problems
        assert "Edge 'e3' references missing target 'ghost'" in problems
        assert "No entry point: every node has an incoming edge" in problems
        assert any(p.startswith("Cycle detected") for p in problems)

    def test_problems_of_clean_graph(self, make_flow):
        assert make_flow([("a", "x"), ("b", "x")], [("a", "b")]).problems() == []

    def test_pydantic_validate_is_not_shadowed(self):
        assert "validate" not in FlowGraph.__dict__

    def test_extra_fields_are_kept(self):
        graph = FlowGraph.from_dict({"id": "f", "nodes": [], "edges": [], "viewport": {"zoom": 1}})
        assert graph.model_extra == {"viewport": {"zoom": 1}}
