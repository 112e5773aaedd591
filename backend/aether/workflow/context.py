# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Context

Tracks execution state for one workflow run. Every run gets its own
context; nothing in here is shared with other runs.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from .models import (
    ExecutionRecord,
    ExecutionStatus,
    Node,
    NodeResult,
    RespondPayload,
    TriggerSource,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExecutionContext:
    """
    Execution context for a workflow run.

    Tracks:
    - Node outputs (run-local, keyed by node id)
    - Executed nodes
    - Per-run variables
    - Collaborators handed to node handlers (http, chat, credentials)

    Handlers receive this object as their third argument.
    """

    def __init__(
        self,
        execution_id: str,
        workflow_id: str,
        trigger_source: TriggerSource,
        input: Any = None,
        http=None,
        chat=None,
        email=None,
        credentials=None,
        config=None,
        user_id: Optional[str] = None,
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.trigger_source = trigger_source
        self.input = input  # original trigger payload
        self.started_at = utc_now()
        self.user_id = user_id

        # Collaborators
        self.http = http
        self.chat = chat
        self.email = email
        self.credentials = credentials
        self.config = config

        # Node execution tracking
        self.outputs: Dict[str, Any] = {}  # node_id -> output
        self.node_results: Dict[str, NodeResult] = {}
        self.executed: Set[str] = set()
        self.variables: Dict[str, Any] = {}
        self.last_output: Any = None
        self.response: Optional[RespondPayload] = None

    def is_executed(self, node_id: str) -> bool:
        return node_id in self.executed

    def mark_started(self, node: Node) -> str:
        self.executed.add(node.id)
        return utc_now()

    def record_output(self, node: Node, output: Any, started_at: str) -> None:
        """Store a node's output for downstream nodes and the trace"""
        self.outputs[node.id] = output
        self.last_output = output
        self.node_results[node.id] = NodeResult(
            node_id=node.id,
            node_type=node.type,
            output=output,
            started_at=started_at,
            finished_at=utc_now(),
        )

    def record_error(self, node: Node, error: str, started_at: str) -> None:
        self.node_results[node.id] = NodeResult(
            node_id=node.id,
            node_type=node.type,
            error=error,
            started_at=started_at,
            finished_at=utc_now(),
        )

    def to_record(self, status: ExecutionStatus, error: Optional[str] = None) -> ExecutionRecord:
        """Freeze the current state into an immutable ExecutionRecord"""
        return ExecutionRecord(
            execution_id=self.execution_id,
            workflow_id=self.workflow_id,
            trigger_source=self.trigger_source,
            status=status,
            started_at=self.started_at,
            finished_at=utc_now(),
            node_results=dict(self.node_results),
            output=self.last_output,
            response=self.response,
            error=error,
        )
