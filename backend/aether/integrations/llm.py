# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Chat completion client for AI nodes.

Talks to any OpenAI-compatible /chat/completions endpoint (OpenRouter by
default). Node handlers only depend on the chat() coroutine, so tests can
hand the engine any object with the same signature.
"""

from typing import Any, Dict, List, Optional

import httpx

from aether.core.errors import ConfigurationError, ExecutionError


class ChatClient:
    """Minimal async chat client"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        default_model: str,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.default_model = default_model
        self.http = http or httpx.AsyncClient(timeout=timeout)

    async def chat(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Send one prompt and return the first choice's text.

        Raises:
            ConfigurationError: No API key configured
            ExecutionError: Provider returned an error
        """
        if not self.api_key:
            raise ConfigurationError("LLM API key not configured (OPENROUTER_API_KEY)")

        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {"model": model or self.default_model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature

        try:
            response = await self.http.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExecutionError(f"Chat completion failed: {e}")

        data = response.json()
        choices = data.get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or "No response"

    async def aclose(self) -> None:
        await self.http.aclose()
