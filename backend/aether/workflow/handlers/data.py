# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Data transformation nodes: set, filter, merge, split, expression.
"""

from typing import Any, Dict

from aether.workflow.expressions import (
    evaluate_condition,
    evaluate_expression,
    interpolate,
    resolve_path,
)
from aether.workflow.registry import NodeHandlerRegistry


def spread(value: Any) -> Dict[str, Any]:
    """
    Copy a node input into a fresh dict so handlers can add keys to it.

    Non-dict inputs are kept under "value"; None becomes an empty dict.
    """
    if isinstance(value, dict):
        return dict(value)
    if value is None:
        return {}
    return {"value": value}


def matches_all(record: Any, conditions) -> bool:
    return all(evaluate_condition(record, condition) for condition in conditions)


async def set_fields(node, input, context):
    """Merge interpolated fields into the input"""
    result = spread(input)
    for key, value in (node.config.get("fields") or {}).items():
        result[key] = interpolate(value, input) if isinstance(value, str) else value
    return result


async def filter_items(node, input, context):
    """Keep items matching every condition"""
    conditions = node.config.get("conditions") or []

    if not isinstance(input, list):
        return input if matches_all(input, conditions) else None

    return [item for item in input if matches_all(item, conditions)]


async def merge_inputs(node, input, context):
    """Inputs are merged by the engine; pass through"""
    return input


async def split_items(node, input, context):
    """Split into a list of items"""
    items_path = node.config.get("itemsPath")
    if items_path:
        items = resolve_path(input, items_path)
        if isinstance(items, list):
            return items

    if isinstance(input, list):
        return input

    return [input]


async def evaluate(node, input, context):
    """
    Evaluate ``config.expression`` over the input.

    Top-level keys of a dict input are available by name, the whole input as
    ``input``, the run's variables as ``variables``:

        body.n * 2
        len(input) > 0
    """
    expression = node.config.get("expression")
    if not expression:
        raise ValueError("Expression node requires an expression")

    variables = spread(input) if isinstance(input, dict) else {}
    variables["input"] = input
    variables["variables"] = context.variables

    result = evaluate_expression(expression, variables)

    target = node.config.get("variable")
    if target:
        context.variables[target] = result

    return result


def register(registry: NodeHandlerRegistry) -> None:
    registry.register("ACTION_SET", set_fields)
    registry.register("ACTION_FILTER", filter_items)
    registry.register("ACTION_MERGE", merge_inputs)
    registry.register("ACTION_SPLIT", split_items)
    registry.register("ACTION_EXPRESSION", evaluate)
