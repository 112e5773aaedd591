# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Validation

Entry-point selection and DAG validation using topological sort
(Kahn's algorithm).
"""

from collections import deque
from typing import Dict, List, Optional

from aether.core.errors import (
    CyclicWorkflowError,
    NoStartNodeError,
    UnknownNodeTypeError,
    WorkflowValidationError,
)
from .models import Node, WorkflowDefinition
from .registry import NodeHandlerRegistry


def find_start_nodes(workflow: WorkflowDefinition, registry: Optional[NodeHandlerRegistry] = None) -> List[Node]:
    """
    Nodes eligible to begin a run, in declaration order.

    A node qualifies if its handler is trigger-category, or if it has no
    incoming edges.
    """
    targets = {edge.target for edge in workflow.edges}
    return [
        node for node in workflow.nodes
        if node.id not in targets or (registry is not None and registry.is_trigger(node.type))
    ]


def validate_workflow(
    workflow: WorkflowDefinition,
    registry: Optional[NodeHandlerRegistry] = None,
    allow_cycles: bool = False
) -> List[str]:
    """
    Validate workflow structure.

    Returns topological order of node ids (declaration order when
    allow_cycles is set).

    Raises:
        WorkflowValidationError: empty workflow
        UnknownNodeTypeError: a node type has no handler (registry given)
        NoStartNodeError: nothing can start the run
        CyclicWorkflowError: self-loop or cycle
    """
    # Duplicate ids and dangling edges are rejected by the model itself
    if len(workflow.nodes) == 0:
        raise WorkflowValidationError("Workflow must have at least one node", field="nodes")

    if registry is not None:
        for node in workflow.nodes:
            if node.type not in registry:
                raise UnknownNodeTypeError(node.type, node.id)

    if not find_start_nodes(workflow, registry):
        raise NoStartNodeError(workflow.id)

    if allow_cycles:
        return [node.id for node in workflow.nodes]

    return topological_sort(workflow)


def topological_sort(workflow: WorkflowDefinition) -> List[str]:
    """
    Perform topological sort using Kahn's algorithm.

    Detects:
    - Cycles
    - Self-loops

    Disconnected subgraphs are allowed: every unconnected node is its own
    start node.

    Raises CyclicWorkflowError if the graph is not a DAG.
    """
    graph: Dict[str, List[str]] = {node.id: [] for node in workflow.nodes}
    in_degree: Dict[str, int] = {node.id: 0 for node in workflow.nodes}

    for edge in workflow.edges:
        if edge.source == edge.target:
            raise CyclicWorkflowError(
                f"Self-loop not allowed: {edge.source} -> {edge.target}",
                field="edges"
            )

        graph[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    queue = deque([node_id for node_id, degree in in_degree.items() if degree == 0])

    if not queue:
        raise CyclicWorkflowError(
            "No nodes without incoming edges (all nodes have incoming edges - cycle detected)",
            field="edges"
        )

    topological_order = []

    while queue:
        node_id = queue.popleft()
        topological_order.append(node_id)

        for neighbor in graph[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(topological_order) != len(workflow.nodes):
        unprocessed = sorted(set(graph) - set(topological_order))
        raise CyclicWorkflowError(
            f"Cycle detected in workflow graph involving nodes: {unprocessed}",
            field="edges"
        )

    return topological_order
