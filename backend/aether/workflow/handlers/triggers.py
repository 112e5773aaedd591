# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Trigger nodes.

The stimulus (manual run, webhook request, cron tick) already happened by the
time these execute; they only shape the trigger payload for downstream nodes.
"""

import logging

from aether.workflow.context import utc_now
from aether.workflow.registry import HandlerCategory, NodeHandlerRegistry

logger = logging.getLogger(__name__)


async def manual_trigger(node, input, context):
    """Pass the manual input through"""
    logger.info(f"Manual trigger activated: {node.name or node.id}")
    return input or {"triggered": True, "timestamp": utc_now()}


async def passthrough_trigger(node, input, context):
    """Generic trigger: pass webhook data through"""
    return input or {}


async def webhook_trigger(node, input, context):
    """Reshape the webhook payload to {body, query, headers, method, path, timestamp}"""
    source = context.input if isinstance(context.input, dict) else {}
    received = input if isinstance(input, dict) else {}
    webhook = source.get("webhook") or received.get("webhook") or {}

    return {
        "body": webhook.get("body", received.get("body", input)),
        "query": webhook.get("query") or received.get("query") or {},
        "headers": webhook.get("headers") or received.get("headers") or {},
        "method": webhook.get("method", "POST"),
        "path": webhook.get("path") or node.config.get("path", ""),
        "timestamp": webhook.get("timestamp") or utc_now(),
        "_raw": input,
    }


async def schedule_trigger(node, input, context):
    """Cron tick: {triggered, scheduledTime, cronExpression} plus input"""
    logger.info(f"Schedule trigger activated: {node.name or node.id}")
    output = {
        "triggered": True,
        "scheduledTime": utc_now(),
        "cronExpression": node.config.get("cronExpression"),
    }
    if isinstance(input, dict):
        output.update(input)
    return output


def register(registry: NodeHandlerRegistry) -> None:
    registry.register("TRIGGER_MANUAL", manual_trigger, category=HandlerCategory.TRIGGER)
    registry.register("TRIGGER", passthrough_trigger, category=HandlerCategory.TRIGGER)
    registry.register("TRIGGER_WEBHOOK", webhook_trigger, category=HandlerCategory.TRIGGER)
    registry.register("TRIGGER_SCHEDULE", schedule_trigger, category=HandlerCategory.TRIGGER)
