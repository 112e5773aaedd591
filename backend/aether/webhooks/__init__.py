# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Webhook triggers: path registration, authentication and dispatch to the
workflow engine.
"""

from aether.webhooks.models import (
    AuthType,
    RegisteredWebhook,
    ResponseMode,
    WebhookRequest,
    WebhookResult,
)
from aether.webhooks.service import WebhookService

__all__ = [
    "AuthType",
    "RegisteredWebhook",
    "ResponseMode",
    "WebhookRequest",
    "WebhookResult",
    "WebhookService",
]
