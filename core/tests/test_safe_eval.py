"""Tests for the condition expression evaluator."""

import pytest

from forgeflow.graph.errors import ExpressionError
from forgeflow.graph.safe_eval import MAX_EXPRESSION_LENGTH, normalize, safe_eval


class TestNormalize:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("a === b", "a == b"),
            ("a !== b", "a != b"),
            ("a != b", "a != b"),
            ("a && b", "a  and  b"),
            ("a || b", "a  or  b"),
            ("!a", "not a"),
            ("x == null", "x == None"),
            ("flag === true", "flag == True"),
        ],
    )
    def test_javascript_spelling(self, source, expected):
        assert normalize(source) == expected

    def test_string_literals_are_untouched(self):
        assert normalize('status === "a && !b"') == 'status == "a && !b"'

    def test_identifiers_containing_keywords_are_untouched(self):
        assert normalize("trueValue && nullable") == "trueValue  and  nullable"


class TestEvaluation:
    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("10 > 5", True),
            ("1 + 2 * 3", 7),
            ("2 ** 10", 1024),
            ("7 // 2", 3),
            ("7 % 4", 3),
            ("-3 + +1", -2),
            ("1 < 2 < 3", True),
            ("3 > 2 > 5", False),
            ("'b' in ['a', 'b']", True),
            ("'z' not in 'abc'", True),
            ("None is None", True),
            ("'yes' if 1 > 0 else 'no'", "yes"),
            ("true && !false", True),
            ("null || 'fallback'", "fallback"),
            ("(1, 2)[0]", 1),
            ("{'k': 2}['k']", 2),
            ("'ab' * 2", "abab"),
            ("3 * [0]", [0, 0, 0]),
        ],
    )
    def test_literals_and_operators(self, expression, expected):
        assert safe_eval(expression) == expected

    def test_names_come_from_variables(self):
        variables = {"status": "ok", "count": 3}
        assert safe_eval('status === "ok" && count >= 3', variables) is True

    def test_member_access_and_length(self):
        variables = {"user": {"name": "Ada", "tags": ["a", "b"]}}
        assert safe_eval("user.name == 'Ada'", variables) is True
        assert safe_eval("user.tags.length == 2", variables) is True
        assert safe_eval("user['tags'][1]", variables) == "b"

    def test_slices(self):
        assert safe_eval("items[1:3]", {"items": [0, 1, 2, 3]}) == [1, 2]
        assert safe_eval("word[::-1]", {"word": "abc"}) == "cba"

    def test_safe_helpers(self):
        assert safe_eval("len(items) > 1", {"items": [1, 2]}) is True
        assert safe_eval("lower(name) == 'ada'", {"name": "ADA"}) is True
        assert safe_eval("max(1, 5, 3)") == 5
        assert safe_eval("int('42') + 1") == 43

    def test_variables_shadow_helpers(self):
        assert safe_eval("len", {"len": 3}) == 3

    def test_short_circuit_skips_failing_operand(self):
        assert safe_eval("false && missing_name") is False
        assert safe_eval("true || 1 / 0") is True


class TestRejection:
    @pytest.mark.parametrize(
        "expression",
        [
            "__import__('os').system('ls')",
            "().__class__",
            "open('/etc/passwd')",
            "lambda: 1",
            "[x for x in items]",
            "items.append(1)",
            "print('hi')",
            "len(items, key=1)",
        ],
    )
    def test_unsafe_constructs(self, expression):
        with pytest.raises(ExpressionError):
            safe_eval(expression, {"items": [1]})

    def test_unknown_name(self):
        with pytest.raises(ExpressionError, match="Unknown name 'ghost'"):
            safe_eval("ghost > 1")

    def test_missing_key(self):
        with pytest.raises(ExpressionError, match="not found"):
            safe_eval("user.age", {"user": {}})

    def test_syntax_error(self):
        with pytest.raises(ExpressionError, match="Invalid expression"):
            safe_eval("5 >")

    def test_empty_expression(self):
        with pytest.raises(ExpressionError, match="Empty"):
            safe_eval("   ")

    def test_too_long(self):
        with pytest.raises(ExpressionError, match="too long"):
            safe_eval("1" * (MAX_EXPRESSION_LENGTH + 1))

    def test_huge_exponent(self):
        with pytest.raises(ExpressionError, match="Exponent"):
            safe_eval("2 ** 100000")

    @pytest.mark.parametrize(
        "expression",
        ["(10 ** 1000) ** 1000 > 0", "2 ** 5000", " * ".join(["(2 ** 1000)"] * 5)],
    )
    def test_oversized_integers(self, expression):
        with pytest.raises(ExpressionError, match="too large"):
            safe_eval(expression)

    @pytest.mark.parametrize(
        "expression", ["len('ab' * 10 ** 7)", "[0] * 200000", "10 ** 6 * (1, 2)", "text * 1000"]
    )
    def test_oversized_repetition(self, expression):
        with pytest.raises(ExpressionError, match="too long"):
            safe_eval(expression, {"text": "x" * 500})

    @pytest.mark.parametrize("expression", ["1 / 0", "'a' > 1", "items[9]", "int('x')"])
    def test_runtime_errors_are_wrapped(self, expression):
        with pytest.raises(ExpressionError, match="Failed to evaluate"):
            safe_eval(expression, {"items": []})
