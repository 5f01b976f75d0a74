"""
Safe expression evaluation for condition nodes.

Conditions are written by users in the editor, usually in JavaScript spelling
(``{{output}} > 5 && status === "ok"``). They are normalized to Python
operators, parsed with ``ast`` and evaluated by walking the tree against a
whitelist. Anything outside the whitelist raises ExpressionError; nothing is
ever passed to ``eval``.

Allowed:
- literals: numbers, strings, True/False/None (also true/false/null/undefined),
  lists, tuples, dicts
- names, looked up in the supplied variables
- member access on mappings (``user.name``), ``.length`` on lists and strings
- subscripts and slices
- arithmetic, comparison (chained too), ``in``/``not in``, ``is``/``is not``
- ``and``/``or``/``not`` (also ``&&``/``||``/``!``) and ``a if c else b``
- calls to a fixed set of helpers: len, str, int, float, bool, abs, min, max,
  round, lower, upper
"""

import ast
import logging
import operator
import re
from collections.abc import Mapping
from typing import Any

from forgeflow.graph.errors import ExpressionError

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 2000
MAX_EXPONENT = 1000
MAX_INT_BITS = 4096
MAX_SEQUENCE_LENGTH = 100_000

SAFE_FUNCTIONS: dict[str, Any] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "lower": lambda value: str(value).lower(),
    "upper": lambda value: str(value).upper(),
}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

_JS_LITERALS = {
    "true": "True",
    "false": "False",
    "null": "None",
    "undefined": "None",
}

# Order matters: longest operators first
_TOKEN_RE = re.compile(
    r"""
    (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<strict>===|!==)
    |(?P<logic>&&|\|\|)
    |(?P<neq>!=)
    |(?P<bang>!)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def normalize(expression: str) -> str:
    """
    Rewrite JavaScript-style operators and literals into Python spelling.

    String literals are copied through untouched, so ``"a && b"`` inside quotes
    is not rewritten.
    """
    out: list[str] = []
    for match in _TOKEN_RE.finditer(expression):
        kind = match.lastgroup
        text = match.group()
        if kind == "strict":
            out.append("==" if text == "===" else "!=")
        elif kind == "logic":
            out.append(" and " if text == "&&" else " or ")
        elif kind == "bang":
            out.append(" not ")
        elif kind == "ident":
            out.append(_JS_LITERALS.get(text, text))
        else:
            out.append(text)
    return "".join(out).strip()


def _check_power(base: Any, exponent: Any) -> None:
    """Reject powers whose result would exceed the integer size limit."""
    if not isinstance(exponent, (int, float)):
        return
    if abs(exponent) > MAX_EXPONENT:
        raise ExpressionError(f"Exponent too large: {exponent}")
    if isinstance(base, int) and isinstance(exponent, int) and abs(base) > 1 and exponent > 0:
        if base.bit_length() * exponent > MAX_INT_BITS:
            raise ExpressionError("Result too large")


def _check_repeat(left: Any, right: Any) -> None:
    """Reject string, list and tuple repetition past the sequence length limit."""
    for sequence, count in ((left, right), (right, left)):
        if isinstance(sequence, (str, list, tuple)) and isinstance(count, int):
            if count > MAX_SEQUENCE_LENGTH or len(sequence) * count > MAX_SEQUENCE_LENGTH:
                raise ExpressionError("Repeated sequence too long")


class _Evaluator:
    """Tree walker that only understands whitelisted node types."""

    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def visit(self, node: ast.AST) -> Any:
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is None:
            raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")
        return method(node)

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in self.variables:
            return self.variables[node.id]
        if node.id in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[node.id]
        raise ExpressionError(f"Unknown name '{node.id}'")

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(e) for e in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(e) for e in node.elts)

    def visit_Dict(self, node: ast.Dict) -> Any:
        if any(k is None for k in node.keys):
            raise ExpressionError("Dict unpacking is not allowed")
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values, strict=True)}

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY_OPS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        elif isinstance(node.op, ast.Mult):
            _check_repeat(left, right)
        result = op(left, right)
        if isinstance(result, int) and result.bit_length() > MAX_INT_BITS:
            raise ExpressionError("Result too large")
        return result

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators, strict=True):
            op = _COMPARE_OPS.get(type(op_node))
            if op is None:
                raise ExpressionError(f"Unsupported comparison: {type(op_node).__name__}")
            right = self.visit(comparator)
            if not op(left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        if node.attr.startswith("_"):
            raise ExpressionError(f"Access to '{node.attr}' is not allowed")
        value = self.visit(node.value)
        if isinstance(value, Mapping):
            if node.attr not in value:
                raise ExpressionError(f"Key '{node.attr}' not found")
            return value[node.attr]
        if node.attr == "length" and isinstance(value, (list, tuple, str)):
            return len(value)
        raise ExpressionError(f"Attribute access '.{node.attr}' is only allowed on objects")

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        value = self.visit(node.value)
        if isinstance(node.slice, ast.Slice):
            lower = self.visit(node.slice.lower) if node.slice.lower else None
            upper = self.visit(node.slice.upper) if node.slice.upper else None
            step = self.visit(node.slice.step) if node.slice.step else None
            return value[lower:upper:step]
        return value[self.visit(node.slice)]

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in SAFE_FUNCTIONS:
            raise ExpressionError("Only built-in helper functions may be called")
        if node.keywords:
            raise ExpressionError("Keyword arguments are not allowed")
        args = [self.visit(arg) for arg in node.args]
        return SAFE_FUNCTIONS[node.func.id](*args)


def safe_eval(expression: str, variables: Mapping[str, Any] | None = None) -> Any:
    """
    Evaluate a condition expression.

    Args:
        expression: The expression, JavaScript or Python spelling
        variables: Names visible to the expression

    Returns:
        The value of the expression

    Raises:
        ExpressionError: On a syntax error, a forbidden construct, or a
            runtime failure such as a type mismatch or division by zero
    """
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError("Expression too long")

    source = normalize(expression)
    if not source:
        raise ExpressionError("Empty expression")

    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression '{expression}': {e.msg}") from e

    try:
        return _Evaluator(variables or {}).visit(tree)
    except ExpressionError:
        raise
    except (TypeError, ValueError, ZeroDivisionError, KeyError, IndexError, OverflowError) as e:
        raise ExpressionError(f"Failed to evaluate '{expression}': {e}") from e
