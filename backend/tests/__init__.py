# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for the Aether backend

Structure:
- unit/: Core utilities (config, errors, logging, execution store)
- workflow/: Expressions, registry, validation, engine, handlers
- webhooks/: Webhook trigger service
- api/: HTTP API through FastAPI's TestClient
"""
