# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
External collaborators used by node handlers: chat completions, email and
the credential store.
"""

from aether.integrations.credentials import CredentialStore, InMemoryCredentialStore
from aether.integrations.email import EmailClient
from aether.integrations.llm import ChatClient

__all__ = ["ChatClient", "CredentialStore", "EmailClient", "InMemoryCredentialStore"]
