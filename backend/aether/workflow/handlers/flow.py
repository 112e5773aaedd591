# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Control flow nodes: if, switch, loop, wait, respond.

The engine follows every outgoing edge, so branching nodes annotate their
output (_conditionResult, _switchOutput) for downstream filters instead of
pruning edges.
"""

import asyncio
import logging
import math

from aether.workflow.expressions import evaluate_condition, interpolate, resolve_path
from aether.workflow.models import RespondPayload
from aether.workflow.registry import HandlerCategory, NodeHandlerRegistry
from .data import spread

logger = logging.getLogger(__name__)

WAIT_UNITS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
}


async def if_condition(node, input, context):
    """Evaluate conditions combined with and/or"""
    conditions = node.config.get("conditions") or []
    combine = str(node.config.get("combine", "and")).lower()

    results = [evaluate_condition(input, condition) for condition in conditions]
    if not results:
        passed = True
    elif combine == "or":
        passed = any(results)
    else:
        passed = all(results)

    output = spread(input)
    output["_conditionResult"] = passed
    return output


async def switch(node, input, context):
    """First matching condition selects the output"""
    output = spread(input)

    for index, condition in enumerate(node.config.get("conditions") or []):
        if evaluate_condition(input, condition):
            selected = condition.get("output")
            output["_switchOutput"] = index if selected is None else selected
            output["_matchedCondition"] = index
            return output

    output["_switchOutput"] = "default"
    output["_matchedCondition"] = -1
    return output


async def loop(node, input, context):
    """Describe the batches a downstream node should process"""
    items = input
    items_path = node.config.get("itemsPath")
    if items_path:
        items = resolve_path(input, items_path)

    if not isinstance(items, list):
        items = [items]

    batch_size = max(int(node.config.get("batchSize", 1)), 1)

    return {
        "items": items,
        "batchSize": batch_size,
        "totalItems": len(items),
        "batches": math.ceil(len(items) / batch_size),
    }


async def wait(node, input, context):
    """Sleep, then pass the input through"""
    duration = node.config.get("duration", 1)
    unit = node.config.get("unit", "seconds")

    logger.debug(f"Waiting for {duration} {unit}")
    await asyncio.sleep(float(duration) * WAIT_UNITS.get(unit, 1))

    output = spread(input)
    output["_waitedFor"] = {"duration": duration, "unit": unit}
    return output


async def respond(node, input, context):
    """Custom HTTP response for onCompleted webhooks"""
    body = node.config.get("body")
    if not body:
        body = input
    elif isinstance(body, str):
        body = interpolate(body, input)

    payload = RespondPayload(
        status_code=node.config.get("statusCode") or 200,
        headers=node.config.get("headers") or {"Content-Type": "application/json"},
        body=body,
    )
    logger.info(f"Respond node {node.id} returning status {payload.status_code}")

    output = payload.model_dump()
    output["response"] = body
    return output


def register(registry: NodeHandlerRegistry) -> None:
    registry.register("ACTION_IF", if_condition)
    registry.register("ACTION_SWITCH", switch)
    registry.register("ACTION_LOOP", loop)
    registry.register("ACTION_WAIT", wait)
    registry.register("ACTION_RESPOND", respond, category=HandlerCategory.RESPOND)
