# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
HTTP request node.
"""

import logging

from aether.workflow.expressions import interpolate, interpolate_deep
from aether.workflow.registry import ErrorPolicy, NodeHandlerRegistry

logger = logging.getLogger(__name__)


def _response_data(response):
    try:
        return response.json()
    except ValueError:
        return response.text


async def http_request(node, input, context):
    """
    Send an HTTP request built from the node config.

    url, headers and body accept {{ path }} templates resolved against the
    input. Non-2xx responses come back as {status, statusText, error, data};
    transport failures raise.
    """
    url = node.config.get("url")
    if not url:
        raise ValueError("HTTP node requires a URL")

    method = str(node.config.get("method", "GET")).upper()
    resolved_url = interpolate(url, input)
    headers = {"Content-Type": "application/json"}
    headers.update(interpolate_deep(node.config.get("headers") or {}, input))
    body = node.config.get("body")
    resolved_body = interpolate_deep(body, input) if body else None

    logger.debug(f"HTTP Request: {method} {resolved_url}")

    request_kwargs = {"headers": headers}
    if resolved_body is not None:
        if isinstance(resolved_body, (dict, list)):
            request_kwargs["json"] = resolved_body
        else:
            request_kwargs["content"] = str(resolved_body)
    if node.config.get("timeout"):
        request_kwargs["timeout"] = float(node.config["timeout"])

    response = await context.http.request(method, resolved_url, **request_kwargs)

    if response.is_error:
        return {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "error": f"Request failed with status code {response.status_code}",
            "data": _response_data(response),
        }

    return {
        "status": response.status_code,
        "statusText": response.reason_phrase,
        "headers": dict(response.headers),
        "data": _response_data(response),
    }


def register(registry: NodeHandlerRegistry) -> None:
    registry.register("ACTION_HTTP", http_request, error_policy=ErrorPolicy.RETURN)
