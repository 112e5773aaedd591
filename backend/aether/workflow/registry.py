# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Handler Registry

Lookup table from node type identifier to an executable handler plus the
metadata the engine needs to treat it correctly:

    category      "trigger" nodes are always start nodes, "respond" nodes
                  produce an explicit HTTP response, everything else is
                  an "action"
    error_policy  "raise"  - a raised exception is fatal to the run
                  "return" - the engine turns a raised exception into an
                             error-shaped payload and the run continues

Handlers share one signature:

    async def handler(node, merged_input, context) -> output
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


NodeHandler = Callable[[Any, Any, Any], Awaitable[Any]]


class HandlerCategory(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    RESPOND = "respond"


class ErrorPolicy(str, Enum):
    RAISE = "raise"
    RETURN = "return"


@dataclass(frozen=True)
class HandlerRegistration:
    """Handler plus registration metadata"""
    node_type: str
    handler: NodeHandler
    category: HandlerCategory = HandlerCategory.ACTION
    error_policy: ErrorPolicy = ErrorPolicy.RAISE
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.node_type,
            "category": self.category.value,
            "error_policy": self.error_policy.value,
            "description": self.description,
        }


class NodeHandlerRegistry:
    """
    Registry of node handlers keyed by node type.

    Registration is last-wins: registering a type twice replaces the first
    handler. Build one per application (or per test) with
    create_default_registry().
    """

    def __init__(self):
        self._handlers: Dict[str, HandlerRegistration] = {}

    def register(
        self,
        node_type: str,
        handler: NodeHandler,
        *,
        category: str = HandlerCategory.ACTION,
        error_policy: str = ErrorPolicy.RAISE,
        description: str = ""
    ) -> HandlerRegistration:
        """Register (or replace) the handler for ``node_type``"""
        if node_type in self._handlers:
            logger.debug(f"Replacing handler for node type {node_type}")

        registration = HandlerRegistration(
            node_type=node_type,
            handler=handler,
            category=HandlerCategory(category),
            error_policy=ErrorPolicy(error_policy),
            description=description or (handler.__doc__ or "").strip().split("\n")[0],
        )
        self._handlers[node_type] = registration
        return registration

    def handler(self, *node_types: str, **metadata) -> Callable[[NodeHandler], NodeHandler]:
        """
        Decorator form of register().

        Example:
            @registry.handler("ACTION_SET")
            async def set_fields(node, input, context):
                ...
        """
        def decorator(func: NodeHandler) -> NodeHandler:
            for node_type in node_types:
                self.register(node_type, func, **metadata)
            return func
        return decorator

    def resolve(self, node_type: str) -> Optional[NodeHandler]:
        registration = self._handlers.get(node_type)
        return registration.handler if registration else None

    def get_registration(self, node_type: str) -> Optional[HandlerRegistration]:
        return self._handlers.get(node_type)

    def list_registered_types(self) -> List[str]:
        return list(self._handlers.keys())

    def list_registrations(self) -> List[HandlerRegistration]:
        return list(self._handlers.values())

    def is_trigger(self, node_type: str) -> bool:
        registration = self._handlers.get(node_type)
        return registration is not None and registration.category == HandlerCategory.TRIGGER

    def is_respond(self, node_type: str) -> bool:
        registration = self._handlers.get(node_type)
        return registration is not None and registration.category == HandlerCategory.RESPOND

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def create_default_registry() -> NodeHandlerRegistry:
    """Fresh registry with every built-in handler registered"""
    from aether.workflow.handlers import register_builtin_handlers

    registry = NodeHandlerRegistry()
    register_builtin_handlers(registry)
    return registry
