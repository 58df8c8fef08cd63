"""
Combination filter expressions.

A filter is a boolean expression over axis names, for example::

    axis1 == '1' and axis2 == '2'
    (os == 'linux' && jdk == '17') || os == 'windows'
    jdk in ('11', '17') and not os == 'mac'

Both Python (``and``/``or``/``not``) and C-style (``&&``/``||``/``!``)
boolean operators are accepted. Only comparisons, boolean operators, axis
names, string/number literals and tuple/list literals are allowed; anything
else is rejected when the filter is compiled.
"""

from __future__ import annotations

import ast
import operator
import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Protocol

from buildretry.exceptions import ExpressionError

_COMPARATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

# C-style operators outside string literals
_TOKEN_RE = re.compile(r"""('(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")|(&&|\|\||!(?!=))""")
_C_OPERATORS = {"&&": " and ", "||": " or ", "!": " not "}


class ExpressionEvaluator(Protocol):
    """Tests a combination's coordinates against a filter string."""

    def evaluate(self, expression: str, values: Mapping[str, str]) -> bool: ...


def _normalize(expression: str) -> str:
    def replace(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return _C_OPERATORS[match.group(2)]

    return _TOKEN_RE.sub(replace, expression).strip()


@lru_cache(maxsize=256)
def compile_filter(expression: str) -> ast.Expression:
    """
    Parse and validate a filter expression.

    Raises:
        ExpressionError: If the expression is empty, malformed, or uses
            unsupported syntax
    """
    source = _normalize(expression)
    if not source:
        raise ExpressionError(expression, "expression is empty")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(expression, e.msg) from e

    for node in ast.walk(tree):
        if not isinstance(
            node,
            (
                ast.Expression,
                ast.BoolOp,
                ast.And,
                ast.Or,
                ast.UnaryOp,
                ast.Not,
                ast.Compare,
                ast.Name,
                ast.Load,
                ast.Constant,
                ast.Tuple,
                ast.List,
            )
            + tuple(_COMPARATORS),
        ):
            raise ExpressionError(expression, f"unsupported syntax: {type(node).__name__}")
    return tree


class AxisExpressionEvaluator:
    """
    Default evaluator: axis names are variables bound to the member's values.

    Literals ``true``/``false`` are accepted alongside ``True``/``False``.
    Referencing an axis the combination does not have is an error.
    """

    CONSTANTS = {"true": True, "false": False, "True": True, "False": False}

    def evaluate(self, expression: str, values: Mapping[str, str]) -> bool:
        tree = compile_filter(expression)
        return bool(self._eval(tree.body, values, expression))

    def _eval(self, node: ast.AST, values: Mapping[str, str], expression: str) -> Any:
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                return all(self._eval(v, values, expression) for v in node.values)
            return any(self._eval(v, values, expression) for v in node.values)
        if isinstance(node, ast.UnaryOp):
            return not self._eval(node.operand, values, expression)
        if isinstance(node, ast.Compare):
            left = self._eval(node.left, values, expression)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, values, expression)
                try:
                    if not _COMPARATORS[type(op)](left, right):
                        return False
                except TypeError as e:
                    raise ExpressionError(expression, str(e)) from e
                left = right
            return True
        if isinstance(node, ast.Name):
            if node.id in values:
                return values[node.id]
            if node.id in self.CONSTANTS:
                return self.CONSTANTS[node.id]
            raise ExpressionError(expression, f"unknown axis '{node.id}'")
        if isinstance(node, ast.Constant):
            # Axis values are strings, so compare numbers as their text
            if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
                return str(node.value)
            return node.value
        if isinstance(node, (ast.Tuple, ast.List)):
            return tuple(self._eval(e, values, expression) for e in node.elts)
        raise ExpressionError(expression, f"unsupported syntax: {type(node).__name__}")


#: Shared default evaluator
DEFAULT_EVALUATOR = AxisExpressionEvaluator()
