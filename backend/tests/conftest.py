# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures.

Every test gets a fresh registry, engine and services; nothing is shared
through module-level state. External HTTP goes through httpx.MockTransport.
"""

import json
import os
import sys
from unittest.mock import AsyncMock

import httpx
import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aether.core.config import Config
from aether.execution_store import ExecutionStore
from aether.services.workflow_service import WorkflowService
from aether.workflow.engine import WorkflowEngine
from aether.workflow.registry import create_default_registry


def echo_transport() -> httpx.MockTransport:
    """Answers every request with a JSON echo of it"""
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        return httpx.Response(200, json={
            "method": request.method,
            "url": str(request.url),
            "body": body,
        })
    return httpx.MockTransport(handler)


@pytest.fixture
def config(tmp_path):
    return Config().with_overrides(
        executions_path=str(tmp_path / "executions"),
        run_timeout=5.0,
        webhook_hash_key="test-hash-key",
        llm_api_key="test-llm-key",
        resend_api_key="test-resend-key",
    )


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def store(config):
    return ExecutionStore(config.executions_path)


@pytest.fixture
def chat():
    """Chat client double"""
    client = AsyncMock()
    client.chat = AsyncMock(return_value="Hello from AI")
    return client


@pytest.fixture
def email():
    client = AsyncMock()
    client.send = AsyncMock(return_value={"id": "msg_123"})
    return client


@pytest.fixture
def engine(registry, config, store, chat, email):
    return WorkflowEngine(
        registry,
        config=config,
        store=store,
        http=httpx.AsyncClient(transport=echo_transport()),
        chat=chat,
        email=email,
    )


@pytest.fixture
def workflow_service(engine):
    return WorkflowService(engine)
