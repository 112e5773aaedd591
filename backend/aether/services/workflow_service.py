# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Service

Owns the workflow table and wires manual, scheduled and webhook triggers to
the engine.
"""

from typing import Any, Dict, List, Optional

from aether.core.errors import DisabledError, NotFoundError
from aether.core.logging import get_service_logger
from aether.webhooks.service import WebhookService
from aether.workflow.engine import WorkflowEngine
from aether.workflow.models import ExecutionRecord, TriggerSource, WorkflowDefinition
from aether.workflow.validation import validate_workflow

logger = get_service_logger("workflows")


class WorkflowService:
    """
    Manages workflow definitions and their triggers.

    Responsibilities:
    - Register/replace/remove workflow definitions (in memory)
    - Keep webhook registrations in step with the definitions
    - Manual and scheduled runs through the engine
    """

    def __init__(self, engine: WorkflowEngine, job_queue=None):
        self.engine = engine
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self.webhooks = WebhookService(engine, self._workflows, config=engine.config, job_queue=job_queue)

    def register_workflow(self, workflow: WorkflowDefinition) -> WorkflowDefinition:
        """
        Validate and store a workflow, registering its webhook paths.

        Re-registering an id replaces the definition; webhook paths it no
        longer declares are removed.

        Raises:
            WorkflowValidationError: Malformed or cyclic graph, unknown node type
            PathCollisionError: A webhook path belongs to another workflow
        """
        validate_workflow(
            workflow, self.engine.registry, allow_cycles=not self.engine.config.reject_cyclic_workflows
        )

        registered = self.webhooks.register_workflow(workflow)
        keep = {webhook.id for webhook in registered}
        for stale in self.webhooks.list_by_workflow(workflow.id):
            if stale.id not in keep:
                self.webhooks.delete(stale.id)

        if not workflow.active:
            self.webhooks.deactivate_workflow(workflow.id)

        self._workflows[workflow.id] = workflow
        logger.info(f"Registered workflow: {workflow.id} ({len(registered)} webhook(s))")
        return workflow

    def get_workflow(self, workflow_id: str) -> WorkflowDefinition:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            raise NotFoundError("Workflow", workflow_id)
        return workflow

    def list_workflows(self) -> List[WorkflowDefinition]:
        return list(self._workflows.values())

    def summarize(self, workflow: WorkflowDefinition) -> Dict[str, Any]:
        return {
            "id": workflow.id,
            "name": workflow.name,
            "description": workflow.description,
            "active": workflow.active,
            "node_count": len(workflow.nodes),
            "webhooks": [w.path for w in self.webhooks.list_by_workflow(workflow.id)],
        }

    def disable_workflow(self, workflow_id: str) -> WorkflowDefinition:
        """Mark inactive and deactivate (not delete) its webhooks"""
        workflow = self.get_workflow(workflow_id).model_copy(update={"active": False})
        self._workflows[workflow_id] = workflow
        count = self.webhooks.deactivate_workflow(workflow_id)
        logger.info(f"Disabled workflow: {workflow_id} ({count} webhook(s) deactivated)")
        return workflow

    def enable_workflow(self, workflow_id: str) -> WorkflowDefinition:
        workflow = self.get_workflow(workflow_id).model_copy(update={"active": True})
        self.webhooks.register_workflow(workflow)
        self._workflows[workflow_id] = workflow
        logger.info(f"Enabled workflow: {workflow_id}")
        return workflow

    def remove_workflow(self, workflow_id: str) -> None:
        """Delete a workflow and its webhooks"""
        self.get_workflow(workflow_id)
        count = self.webhooks.remove_workflow(workflow_id)
        del self._workflows[workflow_id]
        logger.info(f"Removed workflow: {workflow_id} ({count} webhook(s) deleted)")

    async def run_manual(
        self,
        workflow_id: str,
        input: Any = None,
        timeout: Optional[float] = None,
        user_id: Optional[str] = None,
    ) -> ExecutionRecord:
        """
        Run a workflow on demand.

        Raises:
            NotFoundError: Unknown workflow
            DisabledError: Workflow is disabled
            ExecutionError: Run failed (carries .record)
        """
        workflow = self.get_workflow(workflow_id)
        if not workflow.active:
            raise DisabledError(f"Workflow {workflow_id} is disabled")

        return await self.engine.run(
            workflow, input, trigger_source=TriggerSource.MANUAL, timeout=timeout, user_id=user_id
        )

    async def run_scheduled(self, workflow_id: str) -> Optional[ExecutionRecord]:
        """
        Entry point for the cron scheduler.

        Returns:
            ExecutionRecord, or None when the workflow is disabled
        """
        workflow = self.get_workflow(workflow_id)
        if not workflow.active:
            logger.info(f"Skipping scheduled run of disabled workflow: {workflow_id}")
            return None

        return await self.engine.run(workflow, None, trigger_source=TriggerSource.SCHEDULE)
