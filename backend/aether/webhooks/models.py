# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Webhook Models

Registrations, inbound requests and the result envelope returned to HTTP
callers.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from aether.workflow.context import utc_now
from aether.workflow.models import RespondPayload

ANY_METHOD = "ANY"
DEFAULT_AUTH_HEADER = "X-Webhook-Secret"


class ResponseMode(str, Enum):
    """When the HTTP caller gets its answer"""
    ON_RECEIVED = "onReceived"    # immediately, run continues detached
    ON_COMPLETED = "onCompleted"  # after the run finishes


class AuthType(str, Enum):
    NONE = "none"
    BASIC = "basic"
    HEADER = "header"
    JWT = "jwt"


class WebhookAuthConfig(BaseModel):
    """
    Stored authentication material.

    Only keyed hashes of secrets are kept; plaintext never leaves
    WebhookService.register().
    """
    username: Optional[str] = None
    password_hash: Optional[str] = None
    header_name: Optional[str] = None
    header_value_hash: Optional[str] = None


class RegisteredWebhook(BaseModel):
    """A webhook path bound to a workflow"""
    id: str
    path: str
    workflow_id: str
    method: str = ANY_METHOD
    is_active: bool = True
    response_mode: ResponseMode = ResponseMode.ON_COMPLETED
    auth_type: AuthType = AuthType.NONE
    auth_config: WebhookAuthConfig = Field(default_factory=WebhookAuthConfig)
    created_at: str = Field(default_factory=utc_now)
    trigger_count: int = 0
    last_triggered_at: Optional[str] = None


class WebhookRequest(BaseModel):
    """Inbound HTTP request, already parsed by the API layer"""
    method: str
    path: str
    headers: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    timestamp: str = Field(default_factory=utc_now)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class WebhookResult(BaseModel):
    """
    Outcome of handle_request().

    ``status_code`` is the HTTP status for the envelope; ``custom_response``
    is set when an onCompleted run visited a respond node and overrides the
    envelope entirely.
    """
    success: bool
    execution_id: Optional[str] = None
    response: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    status_code: int = 200
    custom_response: Optional[RespondPayload] = None

    def to_envelope(self) -> Dict[str, Any]:
        """Wire shape: {success, executionId, response} or {success, error}"""
        if self.success:
            return {"success": True, "executionId": self.execution_id, "response": self.response}
        envelope: Dict[str, Any] = {"success": False, "error": self.error}
        if self.execution_id:
            envelope["executionId"] = self.execution_id
        return envelope
