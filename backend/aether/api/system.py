# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
System API Routes

Health check and node type discovery.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from aether import __version__
from aether.core.dependencies import get_registry, get_workflow_service
from aether.services.workflow_service import WorkflowService
from aether.workflow.registry import NodeHandlerRegistry

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(service: WorkflowService = Depends(get_workflow_service)) -> Dict[str, Any]:
    """Service health"""
    return {
        "status": "ok",
        "version": __version__,
        "workflows": len(service.list_workflows()),
        "active_executions": len(service.engine.active_executions),
    }


@router.get("/node-types")
async def list_node_types(registry: NodeHandlerRegistry = Depends(get_registry)) -> List[Dict[str, str]]:
    """Registered node types with their category and error policy"""
    return [registration.to_dict() for registration in registry.list_registrations()]
