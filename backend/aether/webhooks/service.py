# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Webhook Trigger Service

Maps inbound HTTP requests to workflow runs:
    path lookup -> active check -> method check -> authentication ->
    stats update -> run (detached or awaited) -> result envelope

Routing failures are returned as typed envelopes (401/403/404/405) and never
reach the engine.
"""

import asyncio
import base64
import binascii
import hashlib
import hmac
import uuid
from typing import Any, Dict, List, Optional, Protocol, Set

from aether.core.config import Config, get_config
from aether.core.errors import (
    AetherError,
    AuthenticationError,
    DisabledError,
    MethodNotAllowedError,
    NotFoundError,
    PathCollisionError,
    WorkflowValidationError,
    sanitize_error_for_user,
)
from aether.core.logging import get_service_logger, log_event
from aether.workflow.context import utc_now
from aether.workflow.engine import WorkflowEngine, new_execution_id
from aether.workflow.models import TriggerSource, WorkflowDefinition, to_jsonable
from .models import (
    ANY_METHOD,
    DEFAULT_AUTH_HEADER,
    AuthType,
    RegisteredWebhook,
    ResponseMode,
    WebhookAuthConfig,
    WebhookRequest,
    WebhookResult,
)

logger = get_service_logger("webhooks")

# Output keys checked, in order, for the value returned to the caller
RESPONSE_KEYS = ("aiResponse", "response", "answer", "output")

ROUTING_ERRORS = (NotFoundError, DisabledError, MethodNotAllowedError, AuthenticationError)


class WorkflowLookup(Protocol):
    def get(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        ...


class JobQueue(Protocol):
    async def enqueue(self, workflow_id: str, input: Any, meta: Dict[str, Any]) -> str:
        ...


def normalize_path(path: str) -> str:
    """Leading slash, no trailing slash"""
    path = "/" + str(path).strip().lstrip("/")
    return path.rstrip("/") or "/"


def extract_response(output: Any) -> Any:
    """Pick the caller-facing value out of a run's final output"""
    if isinstance(output, dict):
        for key in RESPONSE_KEYS:
            if output.get(key):
                return output[key]
    return output


def coerce_option(enum_cls, value, field: str):
    """Convert a node config value to 'enum_cls'; WorkflowValidationError if it is not one"""
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(member.value for member in enum_cls)
        raise WorkflowValidationError(
            f"Invalid {field} '{value}' (expected one of: {allowed})", field=field
        )


def is_webhook_node(node) -> bool:
    node_type = str(node.type).upper()
    return (
        node_type in ("TRIGGER_WEBHOOK", "TRIGGER")
        or "WEBHOOK" in node_type
        or node.config.get("model") == "webhook-trigger"
        or "webhook" in (node.name or "").lower()
    )


class WebhookService:
    """
    Webhook registration and dispatch.

    Args:
        engine: WorkflowEngine used for runs
        workflows: Lookup with get(workflow_id) -> WorkflowDefinition | None
        config: Configuration (hash key, path prefix)
        job_queue: Optional queue for onReceived dispatch; without one,
                   detached runs are in-process background tasks
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        workflows: WorkflowLookup,
        config: Optional[Config] = None,
        job_queue: Optional[JobQueue] = None,
    ):
        self.engine = engine
        self.workflows = workflows
        self.config = config or get_config()
        self.job_queue = job_queue

        self._webhooks: Dict[str, RegisteredWebhook] = {}
        self._path_index: Dict[str, str] = {}  # path -> webhook id
        self._stats_lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

    # =========================================================================
    # Registration
    # =========================================================================

    def _hash(self, value: str) -> str:
        return hmac.new(
            self.config.webhook_hash_key.encode(), value.encode(), hashlib.sha256
        ).hexdigest()

    def _default_path(self, workflow_id: str) -> str:
        return normalize_path(f"{self.config.webhook_path_prefix}/{workflow_id}/trigger")

    def _hash_auth_config(self, auth_config: Optional[Dict[str, Any]]) -> WebhookAuthConfig:
        """Replace plaintext secrets with keyed hashes"""
        auth_config = auth_config or {}
        stored = WebhookAuthConfig()

        username = auth_config.get("username")
        if username:
            stored.username = username
            stored.password_hash = self._hash(auth_config.get("password") or "")

        header_name = auth_config.get("headerName")
        header_value = auth_config.get("headerValue")
        if header_name or header_value is not None:
            stored.header_name = header_name or DEFAULT_AUTH_HEADER
            stored.header_value_hash = self._hash(header_value or "")

        return stored

    def register(
        self,
        workflow_id: str,
        path: Optional[str] = None,
        method: str = ANY_METHOD,
        response_mode: str = ResponseMode.ON_COMPLETED,
        auth_type: str = AuthType.NONE,
        auth_config: Optional[Dict[str, Any]] = None,
    ) -> RegisteredWebhook:
        """
        Register a new webhook endpoint.

        Raises:
            WorkflowValidationError: Unknown response_mode or auth_type
            PathCollisionError: Path already registered
        """
        webhook_id = f"wh_{uuid.uuid4()}"
        path = normalize_path(path or f"{self.config.webhook_path_prefix}/{webhook_id}")

        existing_id = self._path_index.get(path)
        if existing_id is not None:
            raise PathCollisionError(path, self._webhooks[existing_id].workflow_id)

        webhook = RegisteredWebhook(
            id=webhook_id,
            path=path,
            workflow_id=workflow_id,
            method=(method or ANY_METHOD).upper(),
            response_mode=coerce_option(ResponseMode, response_mode, "responseMode"),
            auth_type=coerce_option(AuthType, auth_type, "authType"),
            auth_config=self._hash_auth_config(auth_config),
        )

        self._webhooks[webhook_id] = webhook
        self._path_index[path] = webhook_id

        log_event(logger, "Registered webhook", webhook_id=webhook_id,
                  workflow_id=workflow_id, path=path, method=webhook.method)
        return webhook

    def _webhook_specs(self, workflow: WorkflowDefinition) -> List[Dict[str, Any]]:
        """
        Registration arguments for every webhook entry point of a workflow.

        Every value is checked here, before register_workflow() changes anything.

        Raises:
            WorkflowValidationError: Invalid responseMode, authType or authConfig
        """
        webhook_nodes = [node for node in workflow.nodes if is_webhook_node(node)]

        if not webhook_nodes:
            return [{"path": self._default_path(workflow.id)}] if workflow.nodes else []

        specs = []
        for node in webhook_nodes:
            config = node.config
            auth_config = config.get("authConfig")
            if auth_config is not None and not isinstance(auth_config, dict):
                raise WorkflowValidationError(
                    f"authConfig of node {node.id} must be an object", field="authConfig"
                )
            specs.append({
                "path": normalize_path(config.get("path") or self._default_path(workflow.id)),
                "method": str(config.get("method") or config.get("httpMethod") or ANY_METHOD).upper(),
                "response_mode": coerce_option(
                    ResponseMode, config.get("responseMode") or ResponseMode.ON_COMPLETED, "responseMode"
                ),
                "auth_type": coerce_option(
                    AuthType, config.get("authentication") or config.get("authType") or AuthType.NONE, "authType"
                ),
                "auth_config": auth_config,
            })
        return specs

    def register_workflow(self, workflow: WorkflowDefinition) -> List[RegisteredWebhook]:
        """
        Register (or refresh) the webhooks of a workflow.

        Paths already owned by this workflow are updated in place and
        reactivated. All paths are checked before anything changes.

        Raises:
            WorkflowValidationError: Invalid webhook node config
            PathCollisionError: A path belongs to another workflow
        """
        specs = self._webhook_specs(workflow)

        for spec in specs:
            owner = self.get_by_path(spec["path"])
            if owner is not None and owner.workflow_id != workflow.id:
                raise PathCollisionError(spec["path"], owner.workflow_id)

        registered = []
        for spec in specs:
            existing = self.get_by_path(spec["path"])
            if existing is None:
                registered.append(self.register(workflow.id, **spec))
                continue

            existing.method = str(spec.get("method", existing.method)).upper()
            existing.response_mode = spec.get("response_mode", existing.response_mode)
            existing.auth_type = spec.get("auth_type", existing.auth_type)
            if "auth_config" in spec:
                existing.auth_config = self._hash_auth_config(spec["auth_config"])
            existing.is_active = True
            logger.info(f"Updated webhook for workflow {workflow.id}: {existing.path}")
            registered.append(existing)

        return registered

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _authenticate(self, webhook: RegisteredWebhook, request: WebhookRequest) -> None:
        """
        Raises:
            AuthenticationError: Credentials missing or wrong
        """
        auth = webhook.auth_config

        if webhook.auth_type == AuthType.BASIC:
            header = request.header("Authorization") or ""
            if not header.startswith("Basic "):
                raise AuthenticationError(reason="Missing Basic auth")
            try:
                decoded = base64.b64decode(header[6:], validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                raise AuthenticationError(reason="Malformed Basic auth")
            username, _, password = decoded.partition(":")
            if not auth.username or not hmac.compare_digest(username.encode(), auth.username.encode()):
                raise AuthenticationError(reason="Invalid username")
            if not hmac.compare_digest(self._hash(password), auth.password_hash or ""):
                raise AuthenticationError(reason="Invalid password")

        elif webhook.auth_type == AuthType.HEADER:
            header_name = auth.header_name or DEFAULT_AUTH_HEADER
            value = request.header(header_name)
            if not value:
                raise AuthenticationError(reason=f"Missing header: {header_name}")
            if not hmac.compare_digest(self._hash(value), auth.header_value_hash or ""):
                raise AuthenticationError(reason="Invalid header value")

        elif webhook.auth_type == AuthType.JWT:
            # Presence only; signature verification happens upstream
            header = request.header("Authorization") or ""
            if not header.startswith("Bearer ") or not header[7:].strip():
                raise AuthenticationError(reason="Missing JWT token")

    def _route(self, request: WebhookRequest):
        """Resolve and authorize a request; returns (webhook, workflow)"""
        path = normalize_path(request.path)
        webhook = self.get_by_path(path)
        if webhook is None:
            raise NotFoundError("Webhook", path)

        if not webhook.is_active:
            raise DisabledError("Webhook is disabled")

        if webhook.method != ANY_METHOD and webhook.method != request.method.upper():
            raise MethodNotAllowedError(request.method.upper(), webhook.method)

        try:
            self._authenticate(webhook, request)
        except AuthenticationError as e:
            log_event(logger, "Webhook auth failed", level="WARNING", path=path, reason=e.reason)
            raise

        workflow = self.workflows.get(webhook.workflow_id)
        if workflow is None:
            logger.error(f"Workflow not found for webhook: {webhook.workflow_id}")
            raise NotFoundError("Workflow", webhook.workflow_id)
        if not workflow.active:
            raise DisabledError(f"Workflow {workflow.id} is disabled")

        return webhook, workflow

    async def handle_request(self, request: WebhookRequest) -> WebhookResult:
        """
        Handle an inbound webhook request.

        Returns:
            WebhookResult; routing failures and fatal run errors come back as
            failure envelopes with the matching status code
        """
        try:
            webhook, workflow = self._route(request)
        except ROUTING_ERRORS as e:
            return WebhookResult(
                success=False,
                error=e.message,
                error_type=type(e).__name__,
                status_code=e.status_code,
            )

        async with self._stats_lock:
            webhook.trigger_count += 1
            webhook.last_triggered_at = utc_now()

        payload = {
            "webhook": {
                "path": webhook.path,
                "method": request.method.upper(),
                "headers": request.headers,
                "query": request.query,
                "body": request.body,
                "timestamp": request.timestamp,
            },
            "body": request.body,
            "query": request.query,
        }

        log_event(logger, "Webhook triggered", webhook_id=webhook.id,
                  workflow_id=workflow.id, path=webhook.path,
                  response_mode=webhook.response_mode.value)

        if webhook.response_mode == ResponseMode.ON_RECEIVED:
            execution_id = await self._dispatch_detached(webhook, workflow, payload)
            return WebhookResult(success=True, execution_id=execution_id, response={"status": "accepted"})

        return await self._run_to_completion(webhook, workflow, payload)

    async def _run_to_completion(self, webhook: RegisteredWebhook, workflow: WorkflowDefinition,
                                 payload: Dict[str, Any]) -> WebhookResult:
        try:
            record = await self.engine.run(workflow, payload, trigger_source=TriggerSource.WEBHOOK)
        except AetherError as e:
            record = getattr(e, "record", None)
            log_event(logger, "Webhook execution failed", level="ERROR",
                      path=webhook.path, workflow_id=workflow.id, error=str(e))
            return WebhookResult(
                success=False,
                execution_id=record.execution_id if record is not None else None,
                error=sanitize_error_for_user(e, include_type=False),
                error_type=type(e).__name__,
                status_code=e.status_code,
            )
        except Exception as e:
            log_event(logger, "Webhook execution crashed", level="ERROR",
                      path=webhook.path, workflow_id=workflow.id,
                      error_type=type(e).__name__, error=str(e))
            return WebhookResult(
                success=False,
                error=sanitize_error_for_user(e, include_type=False),
                error_type=type(e).__name__,
                status_code=500,
            )

        log_event(logger, "Webhook execution completed",
                  execution_id=record.execution_id, path=webhook.path,
                  custom_response=record.response is not None)

        return WebhookResult(
            success=True,
            execution_id=record.execution_id,
            response=to_jsonable(extract_response(record.output)),
            custom_response=record.response,
        )

    async def _dispatch_detached(self, webhook: RegisteredWebhook, workflow: WorkflowDefinition,
                                 payload: Dict[str, Any]) -> str:
        if self.job_queue is not None:
            return await self.job_queue.enqueue(
                workflow.id,
                payload,
                {"webhook_id": webhook.id, "path": webhook.path, "trigger_source": TriggerSource.WEBHOOK.value},
            )

        execution_id = new_execution_id()
        task = asyncio.create_task(
            self.engine.run(
                workflow, payload, trigger_source=TriggerSource.WEBHOOK, execution_id=execution_id
            ),
            name=execution_id,
        )
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return execution_id

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)

        if task.cancelled():
            logger.warning(f"Detached run cancelled: {task.get_name()}")
            return

        error = task.exception()
        if error is not None:
            log_event(logger, "Detached run failed", level="ERROR",
                      execution_id=task.get_name(), error=str(error))
        else:
            log_event(logger, "Detached run completed",
                      execution_id=task.get_name(), status=task.result().status.value)

    async def wait_for_background(self) -> None:
        """Wait for detached runs to finish (shutdown, tests)"""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # =========================================================================
    # Management
    # =========================================================================

    def get(self, webhook_id: str) -> Optional[RegisteredWebhook]:
        return self._webhooks.get(webhook_id)

    def get_by_path(self, path: str) -> Optional[RegisteredWebhook]:
        webhook_id = self._path_index.get(normalize_path(path))
        return self._webhooks.get(webhook_id) if webhook_id else None

    def list_webhooks(self) -> List[RegisteredWebhook]:
        return list(self._webhooks.values())

    def list_by_workflow(self, workflow_id: str) -> List[RegisteredWebhook]:
        return [w for w in self._webhooks.values() if w.workflow_id == workflow_id]

    def get_all_paths(self) -> List[str]:
        return list(self._path_index.keys())

    def toggle(self, webhook_id: str) -> RegisteredWebhook:
        """Flip a webhook's active state"""
        webhook = self._webhooks.get(webhook_id)
        if webhook is None:
            raise NotFoundError("Webhook", webhook_id)

        webhook.is_active = not webhook.is_active
        logger.info(f"Webhook {'enabled' if webhook.is_active else 'disabled'}: {webhook_id}")
        return webhook

    def deactivate_workflow(self, workflow_id: str) -> int:
        """Deactivate (not delete) every webhook of a workflow"""
        webhooks = self.list_by_workflow(workflow_id)
        for webhook in webhooks:
            webhook.is_active = False
        return len(webhooks)

    def delete(self, webhook_id: str) -> None:
        webhook = self._webhooks.pop(webhook_id, None)
        if webhook is None:
            raise NotFoundError("Webhook", webhook_id)

        self._path_index.pop(webhook.path, None)
        logger.info(f"Deleted webhook: {webhook_id}")

    def remove_workflow(self, workflow_id: str) -> int:
        """Delete every webhook of a workflow"""
        webhook_ids = [w.id for w in self.list_by_workflow(workflow_id)]
        for webhook_id in webhook_ids:
            self.delete(webhook_id)
        return len(webhook_ids)
