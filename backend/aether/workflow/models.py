# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for workflow definitions and execution records.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from aether.core.errors import WorkflowValidationError


class TriggerSource(str, Enum):
    """What started a run"""
    MANUAL = "manual"
    WEBHOOK = "webhook"
    SCHEDULE = "schedule"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


# ============================================================================
# Definition
# ============================================================================

class Node(BaseModel):
    """
    One unit of workflow behavior, dispatched by type to a handler.

    Example:
        {
            "id": "double",
            "type": "ACTION_EXPRESSION",
            "name": "Double it",
            "config": {"expression": "body.n * 2"}
        }
    """
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    name: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)


class Edge(BaseModel):
    """Directed data-flow connection between two node ports"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)  # Allow both camelCase and snake_case

    id: str = ""
    source: str
    target: str
    source_endpoint: int = Field(default=0, alias="sourceEndpoint")
    target_endpoint: int = Field(default=0, alias="targetEndpoint")

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            data = {**data, "id": f"{data.get('source')}->{data.get('target')}"}
        return data


class WorkflowDefinition(BaseModel):
    """
    Workflow graph. Read-only during runs; shared between concurrent runs.

    Invariants checked on construction:
        - node ids are unique
        - edges only reference existing nodes
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    active: bool = True

    @model_validator(mode="after")
    def _check_references(self) -> "WorkflowDefinition":
        node_ids = [node.id for node in self.nodes]
        if len(node_ids) != len(set(node_ids)):
            duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
            raise WorkflowValidationError(f"Duplicate node IDs found: {duplicates}", field="nodes")

        known = set(node_ids)
        for edge in self.edges:
            for ref in (edge.source, edge.target):
                if ref not in known:
                    raise WorkflowValidationError(
                        f"Edge {edge.id} references non-existent node: {ref}",
                        field="edges"
                    )
        return self

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def incoming_edges(self, node_id: str) -> List[Edge]:
        """Incoming edges ordered by target port, then declaration order"""
        edges = [e for e in self.edges if e.target == node_id]
        return sorted(edges, key=lambda e: e.target_endpoint)

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.source == node_id]


# ============================================================================
# Execution
# ============================================================================

class NodeResult(BaseModel):
    """Output (or error) of one node in one run"""
    node_id: str
    node_type: str
    output: Any = None
    error: Optional[str] = None
    started_at: str
    finished_at: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def to_jsonable(value: Any) -> Any:
    """Coerce an arbitrary value to plain JSON types, falling back to str() for the rest"""
    return json.loads(json.dumps(value, default=str))


class RespondPayload(BaseModel):
    """Explicit HTTP response produced by a respond node"""
    status_code: int = 200
    headers: Dict[str, str] = Field(default_factory=lambda: {"Content-Type": "application/json"})
    body: Any = None


class ExecutionRecord(BaseModel):
    """
    Result of one run. Built from a run-local ExecutionContext and frozen
    once the run terminates.
    """
    model_config = ConfigDict(frozen=True)

    execution_id: str
    workflow_id: str
    trigger_source: TriggerSource
    status: ExecutionStatus
    started_at: str
    finished_at: Optional[str] = None
    node_results: Dict[str, NodeResult] = Field(default_factory=dict)
    output: Any = None
    response: Optional[RespondPayload] = None
    error: Optional[str] = None

    @property
    def outputs(self) -> Dict[str, Any]:
        """node_id -> output for nodes that produced one"""
        return {
            node_id: result.output
            for node_id, result in self.node_results.items()
            if not result.failed
        }

    def to_jsonable(self) -> Dict[str, Any]:
        """JSON-safe dump; node outputs pydantic cannot serialize are stored as str()"""
        try:
            return self.model_dump(mode="json")
        except ValueError:
            return to_jsonable(self.model_dump())


class Condition(BaseModel):
    """Single comparison used by filter/if/switch nodes"""
    field: str
    operator: str = "equals"
    value: Any = None
    output: Optional[Any] = None  # switch: output label when this matches


class RunRequest(BaseModel):
    """Request body for a manual run"""
    input: Optional[Any] = None
    timeout: Optional[float] = None
