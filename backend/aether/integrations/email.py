# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Transactional email over the Resend HTTP API.
"""

from typing import Any, Dict, List, Optional, Union

import httpx

from aether.core.errors import ConfigurationError, ExecutionError

RESEND_API_URL = "https://api.resend.com/emails"


def _as_list(value: Union[str, List[str], None]) -> Optional[List[str]]:
    if value is None:
        return None
    return value if isinstance(value, list) else [value]


class EmailClient:
    """Send email through Resend"""

    def __init__(self, api_key: Optional[str], sender: str, http: Optional[httpx.AsyncClient] = None,
                 api_url: str = RESEND_API_URL):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.http = http or httpx.AsyncClient(timeout=30.0)

    async def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: Optional[str] = None,
        text: Optional[str] = None,
        cc: Union[str, List[str], None] = None,
        bcc: Union[str, List[str], None] = None,
    ) -> Dict[str, Any]:
        """
        Send one message.

        Returns:
            Provider response (contains the message "id")
        """
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY not configured")

        payload = {
            "from": self.sender,
            "to": _as_list(to),
            "subject": subject,
            "html": html,
            "text": text,
            "cc": _as_list(cc),
            "bcc": _as_list(bcc),
        }
        payload = {key: value for key, value in payload.items() if value is not None}

        response = await self.http.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if response.is_error:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise ExecutionError(f"Email failed: {message}")

        return response.json()
