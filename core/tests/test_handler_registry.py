"""Tests for HandlerRegistry and the built-in handler set."""

from forgeflow.graph.node import NodeType
from forgeflow.handlers import build_default_registry
from forgeflow.handlers.registry import HandlerRegistry


async def _one(ctx):
    return 1


async def _two(ctx):
    return 2


def test_register_and_get():
    registry = HandlerRegistry()
    registry.register("custom", _one)

    assert registry.get("custom") is _one
    assert "custom" in registry
    assert registry.get("other") is None
    assert len(registry) == 1


def test_enum_and_string_keys_are_interchangeable():
    registry = HandlerRegistry()
    registry.register(NodeType.ACTION_LOG, _one)

    assert registry.get("action_log") is _one
    assert "action_log" in registry
    assert list(registry) == ["action_log"]


def test_decorator_registers_and_returns_function():
    registry = HandlerRegistry()

    @registry.handler("greet")
    async def greet(ctx):
        return "hi"

    assert registry.get("greet") is greet


def test_register_replaces_existing():
    registry = HandlerRegistry({"x": _one})
    registry.register("x", _two)
    assert registry.get("x") is _two


def test_missing_for_is_sorted_and_unique(make_flow):
    registry = HandlerRegistry({"known": _one})
    graph = make_flow([("a", "zeta"), ("b", "known"), ("c", "alpha"), ("d", "zeta")])

    assert registry.missing_for(graph) == ["alpha", "zeta"]


def test_merge_layers_other_on_top():
    base = HandlerRegistry({"a": _one, "b": _one})
    override = HandlerRegistry({"b": _two, "c": _two})

    merged = base.merge(override)

    assert merged.get("a") is _one
    assert merged.get("b") is _two
    assert merged.get("c") is _two
    assert base.get("b") is _one
    assert merged.node_types() == ["a", "b", "c"]


def test_default_registry_covers_every_built_in_type():
    registry = build_default_registry()
    assert set(registry.node_types()) == {t.value for t in NodeType}
