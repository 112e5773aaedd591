# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Integration nodes: email, Slack, Discord, database, Google Sheets.

Email goes through the context's EmailClient. Slack and Discord post to an
incoming-webhook URL when one is configured (directly or via a stored
credential); otherwise they, like database and sheets, return a descriptive
stub payload.
"""

import json
import logging

from aether.core.errors import ConfigurationError, ValidationError
from aether.workflow.context import utc_now
from aether.workflow.expressions import interpolate
from aether.workflow.registry import ErrorPolicy, NodeHandlerRegistry

logger = logging.getLogger(__name__)


async def _credential(context, credential_id):
    if not credential_id or context.credentials is None:
        return {}
    return await context.credentials.get_decrypted(credential_id, context.user_id) or {}


async def send_email(node, input, context):
    """Send an email; to and subject are required"""
    to = node.config.get("to")
    subject = node.config.get("subject")
    if not to or not subject:
        raise ValidationError('Email node requires "to" and "subject"')
    if context.email is None:
        raise ConfigurationError("No email client configured")

    html_body = node.config.get("htmlBody")
    text_body = node.config.get("textBody")

    result = await context.email.send(
        to=to,
        subject=interpolate(subject, input),
        html=interpolate(html_body, input) if html_body else None,
        text=interpolate(text_body, input) if text_body else json.dumps(input, indent=2, default=str),
        cc=node.config.get("cc"),
        bcc=node.config.get("bcc"),
    )

    logger.info(f"Email sent to {to}")
    return {"success": True, "messageId": result.get("id"), "to": to}


async def slack_message(node, input, context):
    """Post to Slack via an incoming webhook"""
    channel = node.config.get("channel")
    message = interpolate(node.config.get("message") or "", input)

    credential = await _credential(context, node.config.get("credentialId"))
    webhook_url = node.config.get("webhookUrl") or credential.get("webhookUrl")

    if webhook_url:
        response = await context.http.post(webhook_url, json={"channel": channel, "text": message})
        response.raise_for_status()
        return {"success": True, "channel": channel, "message": message, "timestamp": utc_now()}

    logger.info(f"[STUB] Slack message to {channel}: {message}")
    return {"success": True, "stub": True, "channel": channel, "message": message, "timestamp": utc_now()}


async def discord_message(node, input, context):
    """Post to a Discord webhook"""
    webhook_url = node.config.get("webhookUrl")
    message = node.config.get("message") or json.dumps(input, default=str)

    if webhook_url:
        resolved = interpolate(message, input)
        response = await context.http.post(webhook_url, json={"content": resolved})
        response.raise_for_status()
        return {"success": True, "message": resolved}

    logger.info(f"[STUB] Discord message: {message}")
    return {"success": True, "stub": True}


async def database_query(node, input, context):
    """Database operation (stub)"""
    operation = node.config.get("operation")
    table = node.config.get("table")

    logger.info(f"[STUB] Database {operation} on {table}")
    return {
        "success": True,
        "stub": True,
        "operation": operation,
        "table": table,
        "query": node.config.get("query"),
        "values": node.config.get("values"),
    }


async def google_sheets(node, input, context):
    """Google Sheets operation (stub)"""
    spreadsheet_id = node.config.get("spreadsheetId")
    operation = node.config.get("operation")

    logger.info(f"[STUB] Google Sheets {operation} on {spreadsheet_id}")
    return {
        "success": True,
        "stub": True,
        "spreadsheetId": spreadsheet_id,
        "sheetName": node.config.get("sheetName"),
        "operation": operation,
    }


def register(registry: NodeHandlerRegistry) -> None:
    registry.register("ACTION_EMAIL", send_email)
    registry.register("ACTION_SLACK", slack_message, error_policy=ErrorPolicy.RETURN)
    registry.register("ACTION_DISCORD", discord_message, error_policy=ErrorPolicy.RETURN)
    registry.register("ACTION_DATABASE", database_query, error_policy=ErrorPolicy.RETURN)
    registry.register("ACTION_GOOGLE_SHEETS", google_sheets, error_policy=ErrorPolicy.RETURN)
