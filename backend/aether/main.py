# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application - workflow registration, manual runs, execution history
and webhook triggers.

Run with:
    python -m aether.main
"""
# Load environment variables from .env file (local development)
from dotenv import load_dotenv
from pathlib import Path as _PathForEnv
_env_path = _PathForEnv(__file__).resolve().parents[2] / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aether import __version__
from aether.api import executions, system, webhooks, workflows
from aether.core.config import Config, get_config
from aether.core.errors import AetherError
from aether.core.logging import get_api_logger, log_event
from aether.execution_store import ExecutionStore
from aether.integrations import InMemoryCredentialStore
from aether.services.workflow_service import WorkflowService
from aether.workflow.engine import WorkflowEngine
from aether.workflow.registry import NodeHandlerRegistry, create_default_registry


def create_app(
    config: Optional[Config] = None,
    registry: Optional[NodeHandlerRegistry] = None,
    engine: Optional[WorkflowEngine] = None,
) -> FastAPI:
    """
    Build the application and its runtime objects.

    Runtime objects live on app.state (see aether.core.dependencies).
    """
    config = config or get_config()
    logger = get_api_logger()

    if engine is None:
        store = ExecutionStore(config.executions_path)
        engine = WorkflowEngine(
            registry or create_default_registry(),
            config=config,
            store=store,
            credentials=InMemoryCredentialStore(),
        )
    workflow_service = WorkflowService(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Aether {__version__} started with {len(engine.registry)} node types")
        yield
        await workflow_service.webhooks.wait_for_background()
        await engine.aclose()
        logger.info("Aether stopped")

    app = FastAPI(
        title="Aether Workflow Engine",
        description="Workflow execution engine with webhook triggers",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.registry = engine.registry
    app.state.execution_store = engine.store or ExecutionStore(config.executions_path)
    app.state.workflow_service = workflow_service

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AetherError)
    async def aether_error_handler(request: Request, exc: AetherError):
        log_event(logger, "Request failed", level="WARNING",
                  method=request.method, url_path=request.url.path,
                  error_type=type(exc).__name__, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(system.router)
    app.include_router(workflows.router)
    app.include_router(executions.router)
    app.include_router(webhooks.router)
    # Must stay last: matches every remaining path
    app.include_router(webhooks.trigger_router)

    return app


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "aether.main:create_app", factory=True, host=config.host, port=config.port
    )
