# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the Aether backend.

All exceptions inherit from AetherError for consistent error handling.
The HTTP status code on each class is what the API layer and the webhook
envelope report to callers.
"""

from typing import Optional, Any


class AetherError(Exception):
    """Base exception for all Aether errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        """
        Initialize Aether error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (defaults to the class value)
            details: Additional error details
        """
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


# =============================================================================
# Generic errors
# =============================================================================

class NotFoundError(AetherError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Webhook", "Workflow")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(AetherError):
    """Validation failed."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.field = field


class ConfigurationError(AetherError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.config_file = config_file


class ConflictError(AetherError):
    """Resource conflict."""

    status_code = 409

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.resource = resource


# =============================================================================
# Structural errors - rejected before or during traversal
# =============================================================================

class WorkflowValidationError(ValidationError):
    """Workflow definition is malformed (duplicate ids, dangling edges)."""


class CyclicWorkflowError(WorkflowValidationError):
    """Workflow graph contains a cycle or a self-loop."""


class NoStartNodeError(WorkflowValidationError):
    """No node qualifies as an entry point."""

    def __init__(self, workflow_id: str, details: Optional[dict] = None):
        super().__init__(
            f"Workflow {workflow_id} has no start node "
            f"(no trigger node and every node has incoming edges)",
            field="nodes",
            details=details
        )
        self.workflow_id = workflow_id


class UnknownNodeTypeError(WorkflowValidationError):
    """No handler is registered for a node type."""

    def __init__(self, node_type: str, node_id: Optional[str] = None, details: Optional[dict] = None):
        where = f" (node {node_id})" if node_id else ""
        super().__init__(f"Unknown node type: {node_type}{where}", field="type", details=details)
        self.node_type = node_type
        self.node_id = node_id


class PathCollisionError(ConflictError):
    """Webhook path already owned by a different workflow."""

    def __init__(self, path: str, owner_workflow_id: str, details: Optional[dict] = None):
        super().__init__(
            f"Webhook path already registered by workflow {owner_workflow_id}: {path}",
            resource="webhook",
            details=details
        )
        self.path = path
        self.owner_workflow_id = owner_workflow_id


class ExpressionError(ValidationError):
    """Expression or condition could not be evaluated."""


# =============================================================================
# Routing errors - raised by the webhook service before the engine runs
# =============================================================================

class MethodNotAllowedError(AetherError):
    """HTTP method does not match the webhook registration."""

    status_code = 405

    def __init__(self, method: str, expected: str, details: Optional[dict] = None):
        super().__init__(f"Method not allowed. Expected {expected}, got {method}", details=details)
        self.method = method
        self.expected = expected


class DisabledError(AetherError):
    """Webhook or workflow is disabled."""

    status_code = 403


class AuthenticationError(AetherError):
    """Inbound request failed webhook authentication."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", reason: Optional[str] = None,
                 details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.reason = reason


# =============================================================================
# Execution errors
# =============================================================================

class ExecutionError(AetherError):
    """Execution error."""

    def __init__(self, message: str, execution_id: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.execution_id = execution_id
        # Finalized ExecutionRecord, attached by the engine when the run ends
        self.record: Any = None


class NodeExecutionError(ExecutionError):
    """A handler raised under the 'raise' error policy."""

    def __init__(self, node_id: str, node_type: str, message: str, execution_id: Optional[str] = None):
        super().__init__(
            f"Node '{node_id}' ({node_type}) failed: {message}",
            execution_id=execution_id
        )
        self.node_id = node_id
        self.node_type = node_type


class ExecutionLimitExceededError(ExecutionError):
    """Run executed more distinct nodes than the configured ceiling."""

    def __init__(self, limit: int, execution_id: Optional[str] = None):
        super().__init__(
            f"Execution limit exceeded: more than {limit} nodes executed",
            execution_id=execution_id
        )
        self.limit = limit


class RunTimeoutError(ExecutionError):
    """Run exceeded its deadline."""

    status_code = 504

    def __init__(self, timeout: float, execution_id: Optional[str] = None):
        super().__init__(f"Execution exceeded timeout ({timeout}s)", execution_id=execution_id)
        self.timeout = timeout


TimedOutError = RunTimeoutError


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and overly long messages.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
