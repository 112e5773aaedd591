# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Engine

Breadth-first graph execution. Node behavior lives behind the handler
registry; the engine only decides order, feeds each node its merged input
and records what comes back.
"""

import asyncio
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from aether.core.config import Config, get_config
from aether.core.errors import (
    ExecutionError,
    ExecutionLimitExceededError,
    NoStartNodeError,
    NodeExecutionError,
    RunTimeoutError,
    UnknownNodeTypeError,
    sanitize_error_for_user,
)
from aether.core.logging import get_service_logger, log_event
from aether.integrations import ChatClient, EmailClient
from .context import ExecutionContext
from .expressions import to_text
from .models import (
    ExecutionRecord,
    ExecutionStatus,
    Node,
    RespondPayload,
    TriggerSource,
    WorkflowDefinition,
)
from .registry import ErrorPolicy, HandlerCategory, NodeHandlerRegistry
from .validation import find_start_nodes, validate_workflow

logger = get_service_logger("engine")


def new_execution_id() -> str:
    return f"exec_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class WorkflowEngine:
    """
    Workflow execution engine.

    Each run() allocates a private ExecutionContext; concurrent runs of the
    same WorkflowDefinition never see each other's outputs.

    Collaborators (all optional):
        store        ExecutionStore that persists every finished record
        chat         ChatClient used by AI nodes
        email        EmailClient used by the email node
        credentials  CredentialStore handed to handlers
    """

    def __init__(
        self,
        registry: NodeHandlerRegistry,
        config: Optional[Config] = None,
        store=None,
        http: Optional[httpx.AsyncClient] = None,
        chat=None,
        email=None,
        credentials=None,
    ):
        self.registry = registry
        self.config = config or get_config()
        self.store = store
        self.http = http or httpx.AsyncClient(timeout=self.config.http_timeout)
        self.chat = chat or ChatClient(
            self.config.llm_base_url, self.config.llm_api_key, self.config.llm_model, http=self.http
        )
        self.email = email or EmailClient(self.config.resend_api_key, self.config.email_from, http=self.http)
        self.credentials = credentials

        # Execution tracking
        self.active_executions: Dict[str, ExecutionContext] = {}

    async def run(
        self,
        workflow: WorkflowDefinition,
        initial_input: Any = None,
        trigger_source: Union[TriggerSource, str] = TriggerSource.MANUAL,
        timeout: Optional[float] = None,
        execution_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ExecutionRecord:
        """
        Execute a workflow to completion.

        Args:
            workflow: Workflow definition
            initial_input: Trigger payload, handed to start nodes
            trigger_source: "manual", "webhook" or "schedule"
            timeout: Run deadline in seconds (defaults to config.run_timeout)
            execution_id: Pre-allocated id (job queue dispatch)
            user_id: Owner, forwarded to the credential store

        Returns:
            Finalized ExecutionRecord

        Raises:
            CyclicWorkflowError / WorkflowValidationError: rejected before running
            NoStartNodeError: no entry point
            UnknownNodeTypeError: a visited node has no handler
            NodeExecutionError: a 'raise' policy handler failed
            ExecutionLimitExceededError: too many nodes executed
            RunTimeoutError: deadline expired
        """
        trigger_source = TriggerSource(trigger_source)

        if self.config.reject_cyclic_workflows:
            validate_workflow(workflow)

        start_nodes = find_start_nodes(workflow, self.registry)
        if not start_nodes:
            raise NoStartNodeError(workflow.id)

        ctx = ExecutionContext(
            execution_id=execution_id or new_execution_id(),
            workflow_id=workflow.id,
            trigger_source=trigger_source,
            input=initial_input,
            http=self.http,
            chat=self.chat,
            email=self.email,
            credentials=self.credentials,
            config=self.config,
            user_id=user_id,
        )
        self.active_executions[ctx.execution_id] = ctx
        deadline = self.config.run_timeout if timeout is None else timeout

        log_event(logger, "Workflow run started",
                  execution_id=ctx.execution_id, workflow_id=workflow.id,
                  trigger_source=trigger_source.value,
                  start_nodes=[n.id for n in start_nodes])

        try:
            await self._run_with_deadline(workflow, start_nodes, ctx, deadline)
        except (ExecutionError, UnknownNodeTypeError) as e:
            status = ExecutionStatus.TIMED_OUT if isinstance(e, RunTimeoutError) else ExecutionStatus.FAILED
            record = ctx.to_record(status, error=sanitize_error_for_user(e, include_type=False))
            e.record = record
            if isinstance(e, ExecutionError):
                e.execution_id = ctx.execution_id
            await self._finish(record)
            raise
        else:
            record = ctx.to_record(ExecutionStatus.COMPLETED)
            await self._finish(record)
            return record
        finally:
            self.active_executions.pop(ctx.execution_id, None)

    async def _run_with_deadline(
        self,
        workflow: WorkflowDefinition,
        start_nodes: List[Node],
        ctx: ExecutionContext,
        deadline: float,
    ) -> None:
        """
        Run the traversal as a task bounded by ``deadline``.

        On expiry the task is cancelled but not awaited, so a handler stuck
        in an external call cannot hold the caller.
        """
        task = asyncio.create_task(self._traverse(workflow, start_nodes, ctx))
        try:
            done, _ = await asyncio.wait({task}, timeout=deadline)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            task.cancel()
            raise RunTimeoutError(deadline, ctx.execution_id)

        task.result()

    async def _traverse(self, workflow: WorkflowDefinition, start_nodes: List[Node], ctx: ExecutionContext) -> None:
        """Breadth-first worklist over the graph"""
        limit = self.config.max_executed_nodes
        queue = deque(node.id for node in start_nodes)

        while queue:
            node_id = queue.popleft()
            if ctx.is_executed(node_id):
                continue

            if len(ctx.executed) >= limit:
                raise ExecutionLimitExceededError(limit, ctx.execution_id)

            node = workflow.get_node(node_id)
            merged_input = self._gather_input(workflow, node, ctx)
            await self._execute_node(node, merged_input, ctx)

            for edge in workflow.outgoing_edges(node_id):
                if not ctx.is_executed(edge.target):
                    queue.append(edge.target)

    def _gather_input(self, workflow: WorkflowDefinition, node: Node, ctx: ExecutionContext) -> Any:
        """
        Build a node's input from its executed upstream nodes.

        No executed upstream -> the trigger payload; one -> that output;
        several -> outputs stringified and joined with the merge separator.
        """
        available = [
            ctx.outputs[edge.source]
            for edge in workflow.incoming_edges(node.id)
            if edge.source in ctx.outputs
        ]

        if not available:
            return ctx.input
        if len(available) == 1:
            return available[0]

        return self.config.merge_separator.join(
            to_text(output) for output in available if output is not None
        )

    async def _execute_node(self, node: Node, merged_input: Any, ctx: ExecutionContext) -> Any:
        """Dispatch one node to its handler and record the outcome"""
        registration = self.registry.get_registration(node.type)
        if registration is None:
            raise UnknownNodeTypeError(node.type, node.id)

        started_at = ctx.mark_started(node)

        try:
            output = await registration.handler(node, merged_input, ctx)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if registration.error_policy == ErrorPolicy.RETURN:
                output = {
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "node_id": node.id,
                    "input": merged_input,
                }
                log_event(logger, "Node returned error payload", level="WARNING",
                          execution_id=ctx.execution_id, node_id=node.id,
                          node_type=node.type, error=str(e))
            else:
                ctx.record_error(node, str(e), started_at)
                log_event(logger, "Node failed", level="ERROR",
                          execution_id=ctx.execution_id, node_id=node.id,
                          node_type=node.type, error=str(e))
                raise NodeExecutionError(node.id, node.type, str(e), ctx.execution_id) from e

        ctx.record_output(node, output, started_at)

        if registration.category == HandlerCategory.RESPOND:
            ctx.response = self._to_respond_payload(output)

        return output

    @staticmethod
    def _to_respond_payload(output: Any) -> RespondPayload:
        if isinstance(output, RespondPayload):
            return output
        if isinstance(output, dict):
            fields = {
                key: output[key]
                for key in ("status_code", "headers", "body")
                if output.get(key) is not None
            }
            if "statusCode" in output and "status_code" not in fields:
                fields["status_code"] = output["statusCode"]
            return RespondPayload(**fields)
        return RespondPayload(body=output)

    async def _finish(self, record: ExecutionRecord) -> None:
        """Persist and log a finished run"""
        log_event(
            logger,
            "Workflow run finished",
            level="INFO" if record.status == ExecutionStatus.COMPLETED else "ERROR",
            execution_id=record.execution_id,
            workflow_id=record.workflow_id,
            status=record.status.value,
            nodes_executed=len(record.node_results),
            error=record.error,
        )

        if self.store is not None:
            try:
                await self.store.save(record)
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Failed to persist execution {record.execution_id}: {e}")

    async def aclose(self) -> None:
        await self.http.aclose()
