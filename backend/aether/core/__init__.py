# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for the Aether backend.

This package contains:
- config: Configuration management
- errors: Custom exceptions
- logging: Structured logging
"""

from aether.core.config import get_config, Config
from aether.core.errors import AetherError, NotFoundError, ValidationError
from aether.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "AetherError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
