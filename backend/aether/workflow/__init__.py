# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow graph execution.

This package contains:
- models: Workflow definitions and execution records
- expressions: Path lookup, templates, conditions, safe expressions
- registry: Node type -> handler table
- handlers: Built-in node handlers
- validation: Structural checks and start-node selection
- engine: Breadth-first executor
"""

from aether.workflow.engine import WorkflowEngine
from aether.workflow.models import (
    Edge,
    ExecutionRecord,
    ExecutionStatus,
    Node,
    TriggerSource,
    WorkflowDefinition,
)
from aether.workflow.registry import NodeHandlerRegistry, create_default_registry

__all__ = [
    "WorkflowEngine",
    "Edge",
    "ExecutionRecord",
    "ExecutionStatus",
    "Node",
    "TriggerSource",
    "WorkflowDefinition",
    "NodeHandlerRegistry",
    "create_default_registry",
]
