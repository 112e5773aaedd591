# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

Registration, enable/disable and manual execution.
"""

from typing import Any, Dict, List

import pydantic
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from aether.core.dependencies import get_workflow_service
from aether.core.errors import ExecutionError, ValidationError
from aether.services.workflow_service import WorkflowService
from aether.workflow.models import RunRequest, WorkflowDefinition

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("", status_code=201)
async def create_workflow(
    workflow_data: Dict[str, Any],
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Register (or replace) a workflow definition"""
    try:
        workflow = WorkflowDefinition.model_validate(workflow_data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid workflow definition: {e.errors()[0]['msg']}",
                              details={"errors": e.errors(include_url=False, include_context=False)})

    service.register_workflow(workflow)
    return service.summarize(workflow)


@router.get("")
async def list_workflows(service: WorkflowService = Depends(get_workflow_service)) -> List[Dict[str, Any]]:
    """List registered workflows"""
    return [service.summarize(workflow) for workflow in service.list_workflows()]


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Get a workflow definition"""
    return service.get_workflow(workflow_id).model_dump(by_alias=True)


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, str]:
    """Delete a workflow and its webhooks"""
    service.remove_workflow(workflow_id)
    return {"message": f"Workflow '{workflow_id}' deleted"}


@router.post("/{workflow_id}/disable")
async def disable_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    return service.summarize(service.disable_workflow(workflow_id))


@router.post("/{workflow_id}/enable")
async def enable_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    return service.summarize(service.enable_workflow(workflow_id))


@router.post("/{workflow_id}/run")
async def run_workflow(
    workflow_id: str,
    request: RunRequest,
    service: WorkflowService = Depends(get_workflow_service)
):
    """
    Run a workflow manually.

    Returns the execution record; failed runs return the error together with
    the partial record.
    """
    try:
        record = await service.run_manual(workflow_id, request.input, timeout=request.timeout)
    except ExecutionError as e:
        content = e.to_dict()
        content["execution"] = e.record.to_jsonable() if e.record is not None else None
        return JSONResponse(status_code=e.status_code, content=content)

    return record.to_jsonable()
