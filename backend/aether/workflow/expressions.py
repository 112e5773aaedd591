# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Expression and Condition Evaluation

Pure functions used by the engine and by node handlers:
    - resolve_path: dotted-path lookup inside nested records
    - interpolate / interpolate_deep: {{ path }} template substitution
    - evaluate_condition: closed set of comparison operators
    - evaluate_expression: AST-based safe arithmetic/boolean expressions

No state, no I/O.
"""

import ast
import json
import logging
import math
import operator
import re
from collections.abc import Mapping
from typing import Any, Dict

from pydantic import BaseModel

from aether.core.errors import ExpressionError

logger = logging.getLogger(__name__)


class _Undefined:
    """Marker for "no value at this path". Distinct from None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNDEFINED"


UNDEFINED = _Undefined()

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


# ============================================================================
# Path lookup and interpolation
# ============================================================================

def resolve_path(record: Any, dotted_path: str) -> Any:
    """
    Walk ``record`` along ``dotted_path``.

    Mappings are indexed by key, lists/tuples by integer index and pydantic
    models by attribute. Any missing segment returns UNDEFINED; never raises.

    Examples:
        >>> resolve_path({"a": {"b": 2}}, "a.b")
        2
        >>> resolve_path({"a": 1}, "a.b")
        UNDEFINED
    """
    current = record
    for part in str(dotted_path).split("."):
        if current is None or current is UNDEFINED:
            return UNDEFINED

        if isinstance(current, Mapping):
            if part not in current:
                return UNDEFINED
            current = current[part]
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return UNDEFINED
        elif isinstance(current, BaseModel):
            if part not in type(current).model_fields:
                return UNDEFINED
            current = getattr(current, part)
        else:
            return UNDEFINED

    return current


def to_text(value: Any) -> str:
    """Stringify a resolved value for embedding in text"""
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return json.dumps(value, default=str, separators=(",", ":"))
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return str(value)


def interpolate(template: Any, record: Any) -> Any:
    """
    Replace every {{ path }} token with the stringified value at that path.

    Tokens whose path is undefined are left verbatim so partially resolvable
    templates stay visibly incomplete. Non-string templates pass through.

    Examples:
        >>> interpolate("Hello {{name}}", {"name": "Ada"})
        'Hello Ada'
        >>> interpolate("{{missing}}", {})
        '{{missing}}'
    """
    if not isinstance(template, str):
        return template
    if not template:
        return ""

    def replace(match):
        value = resolve_path(record, match.group(1).strip())
        if value is UNDEFINED:
            return match.group(0)
        return to_text(value)

    return TEMPLATE_PATTERN.sub(replace, template)


def interpolate_deep(value: Any, record: Any) -> Any:
    """Apply interpolate() through nested lists and dicts"""
    if isinstance(value, str):
        return interpolate(value, record)
    if isinstance(value, list):
        return [interpolate_deep(item, record) for item in value]
    if isinstance(value, tuple):
        return tuple(interpolate_deep(item, record) for item in value)
    if isinstance(value, Mapping):
        return {key: interpolate_deep(item, record) for key, item in value.items()}
    return value


# ============================================================================
# Conditions
# ============================================================================

def is_empty(value: Any) -> bool:
    """Falsy scalar, empty string or empty sequence. An empty dict is not empty."""
    if value is UNDEFINED or value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False


def _ordered(compare):
    def check(left, right):
        if left is UNDEFINED or left is None:
            return False
        try:
            return bool(compare(left, right))
        except TypeError:
            return False
    return check


def _regex(left, pattern):
    try:
        return re.search(str(pattern), to_text(left)) is not None
    except re.error as e:
        raise ExpressionError(f"Invalid regular expression '{pattern}': {e}", field="value")


def _strict_equals(left, right):
    # bool is a subclass of int: keep True != 1 like a strict comparison
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


CONDITION_OPERATORS = {
    "eq": _strict_equals,
    "equals": _strict_equals,
    "==": _strict_equals,
    "neq": lambda left, right: not _strict_equals(left, right),
    "notEquals": lambda left, right: not _strict_equals(left, right),
    "!=": lambda left, right: not _strict_equals(left, right),
    "gt": _ordered(operator.gt),
    ">": _ordered(operator.gt),
    "gte": _ordered(operator.ge),
    ">=": _ordered(operator.ge),
    "lt": _ordered(operator.lt),
    "<": _ordered(operator.lt),
    "lte": _ordered(operator.le),
    "<=": _ordered(operator.le),
    "contains": lambda left, right: to_text(right) in to_text(left),
    "notContains": lambda left, right: to_text(right) not in to_text(left),
    "regex": _regex,
    "isEmpty": lambda left, _: is_empty(left),
    "isNotEmpty": lambda left, _: not is_empty(left),
    "exists": lambda left, _: left is not UNDEFINED,
    "notExists": lambda left, _: left is UNDEFINED,
}


def evaluate_condition(record: Any, condition: Any) -> bool:
    """
    Evaluate ``{field, operator, value}`` against ``record``.

    An unrecognised operator evaluates to True.

    Examples:
        >>> evaluate_condition({"v": 5}, {"field": "v", "operator": "gte", "value": 5})
        True
    """
    if isinstance(condition, BaseModel):
        condition = condition.model_dump()

    field = condition.get("field", "")
    op_name = condition.get("operator", "equals")
    expected = condition.get("value")

    compare = CONDITION_OPERATORS.get(op_name)
    if compare is None:
        logger.warning(f"Unknown condition operator '{op_name}' - treating as true",
                       extra={"operator": op_name, "field": field})
        return True

    return compare(resolve_path(record, field), expected)


# ============================================================================
# Safe expressions
# ============================================================================

# Allowed operators for safe evaluation
SAFE_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.And: operator.and_,
    ast.Or: operator.or_,
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


# Allowed functions for safe evaluation
SAFE_FUNCTIONS = {
    'len': len,
    'str': str,
    'int': int,
    'float': float,
    'bool': bool,
    'abs': abs,
    'min': min,
    'max': max,
    'round': round,
    'sum': sum,
}


class SafeEvaluator(ast.NodeVisitor):
    """
    AST-based safe evaluator for node expressions.

    Restricts evaluation to:
    - Basic arithmetic and comparison operators
    - Logical operators (and, or, not) and conditional expressions
    - Safe built-in functions (len, str, int, etc.)
    - Variable references, dotted field access and indexing into the input
    - List, tuple and dict literals
    """

    def __init__(self, variables: Dict[str, Any]):
        self.variables = variables

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_Constant(self, node):
        return node.value

    def visit_Name(self, node):
        if node.id in self.variables:
            return self.variables[node.id]
        elif node.id in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[node.id]
        else:
            raise ExpressionError(f"Undefined variable: {node.id}")

    def visit_Attribute(self, node):
        # input.body.n -> path lookup, never Python attribute access
        base = self.visit(node.value)
        value = resolve_path(base, node.attr)
        if value is UNDEFINED:
            raise ExpressionError(f"Undefined field: {node.attr}")
        return value

    def visit_Subscript(self, node):
        base = self.visit(node.value)
        key = self.visit(node.slice)
        try:
            return base[key]
        except (KeyError, IndexError, TypeError) as e:
            raise ExpressionError(f"Invalid index {key!r}: {e}")

    def visit_BinOp(self, node):
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ExpressionError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](left, right)

    def visit_UnaryOp(self, node):
        operand = self.visit(node.operand)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ExpressionError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](operand)

    def visit_Compare(self, node):
        left = self.visit(node.left)

        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            op_type = type(op)

            if op_type not in SAFE_OPERATORS:
                raise ExpressionError(f"Operator not allowed: {op_type.__name__}")

            if not SAFE_OPERATORS[op_type](left, right):
                return False

            left = right

        return True

    def visit_BoolOp(self, node):
        # Short-circuit like Python does
        if isinstance(node.op, ast.And):
            result = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        elif isinstance(node.op, ast.Or):
            result = False
            for value in node.values:
                result = self.visit(value)
                if result:
                    return result
            return result
        raise ExpressionError(f"Boolean operator not allowed: {type(node.op).__name__}")

    def visit_IfExp(self, node):
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_List(self, node):
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node):
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Dict(self, node):
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}

    def visit_Call(self, node):
        func = self.visit(node.func)

        if func not in SAFE_FUNCTIONS.values():
            raise ExpressionError(f"Function not allowed: {getattr(node.func, 'id', 'unknown')}")

        args = [self.visit(arg) for arg in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}

        return func(*args, **kwargs)

    def generic_visit(self, node):
        raise ExpressionError(f"AST node type not allowed: {type(node).__name__}")


def evaluate_expression(expression: str, variables: Dict[str, Any]) -> Any:
    """
    Safely evaluate an expression string.

    Args:
        expression: Python-syntax expression (e.g., "body.n * 2")
        variables: Names available to the expression

    Returns:
        Result of evaluation

    Raises:
        ExpressionError: If the expression is invalid or uses unsafe operations

    Examples:
        >>> evaluate_expression("body.n * 2", {"body": {"n": 3}})
        6
        >>> evaluate_expression("len(items) > 0", {"items": [1, 2, 3]})
        True
    """
    try:
        tree = ast.parse(expression, mode='eval')
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {e}", field="expression")

    try:
        return SafeEvaluator(variables).visit(tree)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Expression evaluation failed: {e}", field="expression")
