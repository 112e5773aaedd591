# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the Aether API.

Runtime objects are created once in create_app() and stored on app.state;
these dependencies hand them to route functions.
"""

from fastapi import Request

from aether.core.config import Config
from aether.execution_store import ExecutionStore
from aether.services.workflow_service import WorkflowService
from aether.webhooks.service import WebhookService
from aether.workflow.registry import NodeHandlerRegistry


def get_current_config(request: Request) -> Config:
    return request.app.state.config


def get_registry(request: Request) -> NodeHandlerRegistry:
    return request.app.state.registry


def get_workflow_service(request: Request) -> WorkflowService:
    return request.app.state.workflow_service


def get_webhook_service(request: Request) -> WebhookService:
    return request.app.state.workflow_service.webhooks


def get_execution_store(request: Request) -> ExecutionStore:
    return request.app.state.execution_store
