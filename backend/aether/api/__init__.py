# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
API Route Modules

FastAPI routers organized by domain:
- system: Health and node type discovery
- workflows: Registration and manual execution
- executions: Execution history
- webhooks: Webhook management and the webhook trigger catch-all
"""
