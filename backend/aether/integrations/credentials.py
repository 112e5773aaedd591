# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Credential store interface.

The real vault lives outside this service. Handlers only call
get_decrypted(credential_id, user_id); the in-memory store backs local
development and tests.
"""

from typing import Any, Dict, Optional, Protocol


class CredentialStore(Protocol):
    async def get_decrypted(self, credential_id: str, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        ...


class InMemoryCredentialStore:
    """Process-local credential table"""

    def __init__(self, credentials: Optional[Dict[str, Dict[str, Any]]] = None):
        self._credentials: Dict[str, Dict[str, Any]] = dict(credentials or {})

    def put(self, credential_id: str, values: Dict[str, Any]) -> None:
        self._credentials[credential_id] = dict(values)

    async def get_decrypted(self, credential_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        values = self._credentials.get(credential_id)
        return dict(values) if values is not None else None
