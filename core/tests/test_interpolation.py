"""Tests for {{placeholder}} interpolation and path resolution."""

import pytest

from forgeflow.graph.errors import InterpolationMiss
from forgeflow.graph.interpolation import (
    MISSING,
    has_placeholders,
    interpolate_config,
    interpolate_string,
    resolve_path,
    stringify,
)


class TestResolvePath:
    def test_dotted_member_access(self):
        assert resolve_path("user.name", {"user": {"name": "Ada"}}) == "Ada"

    def test_bracket_and_numeric_segments(self):
        variables = {"output": {"items": [{"name": "first"}, {"name": "second"}]}}
        assert resolve_path("output.items[1].name", variables) == "second"
        assert resolve_path("output.items.0.name", variables) == "first"

    def test_chained_indices(self):
        assert resolve_path("grid[1][0]", {"grid": [[1, 2], [3, 4]]}) == 3

    def test_length_of_lists_and_strings(self):
        variables = {"items": [1, 2, 3], "word": "hello"}
        assert resolve_path("items.length", variables) == 3
        assert resolve_path("word.length", variables) == 5

    def test_stored_none_is_not_missing(self):
        assert resolve_path("value", {"value": None}) is None

    @pytest.mark.parametrize(
        "path",
        ["missing", "user.age", "user.name.first", "items[5]", "nothing.deeper", "items.x"],
    )
    def test_unresolvable_paths_return_missing(self, path):
        variables = {"user": {"name": "Ada"}, "items": [1], "nothing": None}
        assert resolve_path(path, variables) is MISSING

    def test_missing_is_falsy(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestStringify:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (3.0, "3"),
            (2.5, "2.5"),
            (7, "7"),
            ("text", "text"),
        ],
    )
    def test_scalars(self, value, expected):
        assert stringify(value) == expected

    def test_containers_are_indented_json(self):
        assert stringify({"a": 1}) == '{\n  "a": 1\n}'
        assert stringify([1, "é"]) == '[\n  1,\n  "é"\n]'


class TestInterpolateString:
    def test_embedded_placeholder(self):
        assert interpolate_string("Hello {{user.name}}", {"user": {"name": "Ada"}}) == "Hello Ada"

    def test_whole_placeholder_keeps_type(self):
        assert interpolate_string("{{output}}", {"output": [1, 2, 3]}) == [1, 2, 3]
        assert interpolate_string("{{count}}", {"count": 4}) == 4

    def test_whole_placeholder_tolerates_spaces(self):
        assert interpolate_string("{{ user.name }}", {"user": {"name": "Ada"}}) == "Ada"

    def test_trailing_newline_makes_placeholder_embedded(self):
        assert interpolate_string("{{output}}\n", {"output": [1]}) == "[\n  1\n]\n"
        assert interpolate_string("{{count}}\n", {"count": 4}) == "4\n"

    def test_unresolved_placeholders_stay_literal(self):
        with pytest.warns(InterpolationMiss):
            assert interpolate_string("{{missing.path}}", {}) == "{{missing.path}}"
        with pytest.warns(InterpolationMiss):
            assert interpolate_string("a {{nope}} b", {}) == "a {{nope}} b"

    def test_mixed_resolved_and_unresolved(self):
        with pytest.warns(InterpolationMiss):
            result = interpolate_string("{{a}}-{{b}}", {"a": 1})
        assert result == "1-{{b}}"

    def test_booleans_and_null_use_json_spelling(self):
        assert interpolate_string("{{flag}} / {{empty}}", {"flag": True, "empty": None}) == (
            "true / null"
        )


class TestInterpolateConfig:
    def test_nested_values_are_resolved(self):
        config = {
            "url": "https://api.example.com/{{city}}",
            "headers": {"X-User": "{{user.name}}"},
            "list": ["{{city}}", 5],
            "timeout": 30,
        }
        variables = {"city": "Paris", "user": {"name": "Ada"}}

        assert interpolate_config(config, variables) == {
            "url": "https://api.example.com/Paris",
            "headers": {"X-User": "Ada"},
            "list": ["Paris", 5],
            "timeout": 30,
        }

    def test_input_is_not_mutated(self):
        config = {"nested": {"value": "{{x}}"}}
        interpolate_config(config, {"x": 1})
        assert config == {"nested": {"value": "{{x}}"}}


def test_has_placeholders():
    assert has_placeholders("Hi {{name}}")
    assert not has_placeholders("Hi name")
