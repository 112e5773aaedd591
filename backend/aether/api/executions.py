# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution History API Routes
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from aether.core.dependencies import get_execution_store
from aether.core.errors import NotFoundError
from aether.execution_store import ExecutionStore

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("")
async def list_executions(
    workflow_id: Optional[str] = None,
    status: Optional[str] = None,
    trigger_source: Optional[str] = None,
    date: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: ExecutionStore = Depends(get_execution_store)
) -> List[Dict[str, Any]]:
    """List executions, newest first"""
    return store.list(
        date=date,
        workflow_id=workflow_id,
        status=status,
        trigger_source=trigger_source,
        limit=limit,
        offset=offset,
    )


@router.get("/statistics")
async def execution_statistics(
    days: int = Query(default=30, ge=1),
    store: ExecutionStore = Depends(get_execution_store)
) -> Dict[str, Any]:
    return store.get_statistics(days=days)


@router.get("/{execution_id}")
async def get_execution(
    execution_id: str,
    store: ExecutionStore = Depends(get_execution_store)
) -> Dict[str, Any]:
    """Get one execution record"""
    execution = store.get(execution_id)
    if execution is None:
        raise NotFoundError("Execution", execution_id)
    return execution
