# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Built-in node handlers.

Each submodule exposes register(registry); register_builtin_handlers() wires
all of them into a registry.
"""

from aether.workflow.registry import NodeHandlerRegistry
from . import ai, data, flow, http, integrations, triggers

BUILTIN_MODULES = (triggers, data, flow, http, ai, integrations)


def register_builtin_handlers(registry: NodeHandlerRegistry) -> NodeHandlerRegistry:
    for module in BUILTIN_MODULES:
        module.register(registry)
    return registry


__all__ = ["register_builtin_handlers", "BUILTIN_MODULES"]
