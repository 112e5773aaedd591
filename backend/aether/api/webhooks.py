# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Webhook API Routes

Management endpoints under /webhooks, plus the catch-all router that turns
any other request into a webhook trigger. The catch-all must be included
last.
"""

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from aether.core.dependencies import get_webhook_service
from aether.webhooks.models import WebhookRequest, WebhookResult
from aether.webhooks.service import WebhookService
from aether.workflow.models import to_jsonable

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

trigger_router = APIRouter(tags=["webhook-triggers"])

WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.get("")
async def list_webhooks(service: WebhookService = Depends(get_webhook_service)) -> List[Dict[str, Any]]:
    return [webhook.model_dump(mode="json") for webhook in service.list_webhooks()]


@router.post("/{webhook_id}/toggle")
async def toggle_webhook(
    webhook_id: str,
    service: WebhookService = Depends(get_webhook_service)
) -> Dict[str, Any]:
    """Enable/disable a webhook"""
    return service.toggle(webhook_id).model_dump(mode="json")


@router.delete("/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    service: WebhookService = Depends(get_webhook_service)
) -> Dict[str, str]:
    service.delete(webhook_id)
    return {"message": f"Webhook '{webhook_id}' deleted"}


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None

    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _to_response(result: WebhookResult) -> Response:
    custom = result.custom_response
    if custom is None:
        return JSONResponse(status_code=result.status_code, content=result.to_envelope())

    content_type = next(
        (value for key, value in custom.headers.items() if key.lower() == "content-type"),
        "application/json",
    )
    if "json" in content_type or not isinstance(custom.body, (str, bytes)):
        return JSONResponse(status_code=custom.status_code, content=to_jsonable(custom.body),
                            headers=custom.headers)

    return Response(content=custom.body, status_code=custom.status_code, headers=custom.headers)


@trigger_router.api_route("/{full_path:path}", methods=WEBHOOK_METHODS)
async def trigger_webhook(
    full_path: str,
    request: Request,
    service: WebhookService = Depends(get_webhook_service)
) -> Response:
    """Dispatch any unmatched request to the webhook registered at its path"""
    webhook_request = WebhookRequest(
        method=request.method,
        path=f"/{full_path}",
        headers=dict(request.headers),
        query=dict(request.query_params),
        body=await _read_body(request),
    )

    result = await service.handle_request(webhook_request)
    return _to_response(result)
