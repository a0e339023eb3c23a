"""
OpenRouter Provider - Async Version
====================================

Async implementation using httpx against the OpenRouter chat completions API.
"""

import os
import time
import logging
from typing import Dict, List, Optional

import httpx

from core.schemas import ProviderResponse
from providers.base import TextGenerationProvider

logger = logging.getLogger(__name__)


class AsyncOpenRouterProvider(TextGenerationProvider):
    """
    Async text-generation provider using OpenRouter with httpx.

    HTTP and decoding failures are returned as unsuccessful responses so
    the gateway can retry or escalate.
    """

    def __init__(
        self,
        model: str = "xiaomi/mimo-v2-flash:free",
        api_key: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        timeout: float = 30.0
    ):
        """
        Initialize async OpenRouter provider.

        Args:
            model: Model name
            api_key: OpenRouter API key
            base_url: API base URL
            temperature: Sampling temperature
            max_tokens: Completion token limit
            timeout: Request timeout in seconds

        Raises:
            ValueError: If no API key is available
        """
        self.model = model
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenRouter API key required. "
                "Set OPENROUTER_API_KEY env var or pass api_key parameter."
            )

        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def chat(self, messages: List[Dict[str, str]]) -> Dict:
        """
        Async chat completion.

        Args:
            messages: List of message dicts

        Returns:
            Dict with 'content' and 'usage'
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Cognitive Cycle"
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers
            )

            if not response.is_success:
                logger.error(f"OpenRouter Error: {response.text}")

            response.raise_for_status()

            data = response.json()
            return {
                "content": data["choices"][0]["message"]["content"],
                "usage": data.get("usage", {})
            }

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        started = time.perf_counter()
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt}
        ]
        try:
            response = await self.chat(messages)
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            return ProviderResponse(
                success=False,
                error=f"OpenRouter request failed: {e}",
                duration_ms=(time.perf_counter() - started) * 1000,
            )

        content = response.get("content") or ""
        return ProviderResponse(
            success=bool(content.strip()),
            content=content,
            error=None if content.strip() else "OpenRouter returned empty content",
            duration_ms=(time.perf_counter() - started) * 1000,
            metadata={"model": self.model, "usage": response.get("usage", {})},
        )
