"""
Ollama Provider
===============

Local model server provider. The blocking requests client runs in a worker
thread so it does not stall the event loop.
"""

import asyncio
import time
from typing import Dict, List

import requests

from core.schemas import ProviderResponse
from providers.base import TextGenerationProvider


class OllamaProvider(TextGenerationProvider):
    """Provider for a local Ollama server."""

    def __init__(
        self,
        model: str = "gemma3:1b",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.7,
        timeout: float = 30.0
    ):
        """
        Initialize provider.

        Args:
            model: Model name
            base_url: Ollama base URL
            temperature: Sampling temperature
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.temperature = temperature
        self.timeout = timeout

    def chat(self, messages: List[Dict[str, str]]) -> str:
        """
        Blocking chat completion.

        Args:
            messages: List of message dicts

        Returns:
            Model reply text
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": self.temperature
            }
        }

        response = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        return data["message"]["content"]

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        started = time.perf_counter()
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt}
        ]
        try:
            content = await asyncio.to_thread(self.chat, messages)
        except (requests.RequestException, KeyError, ValueError) as e:
            return ProviderResponse(
                success=False,
                error=f"Ollama request failed: {e}",
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        return ProviderResponse(
            success=bool(content and content.strip()),
            content=content,
            duration_ms=(time.perf_counter() - started) * 1000,
            metadata={"model": self.model},
        )

    def is_available(self) -> bool:
        """Check whether the Ollama server answers."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=2)
            return response.status_code == 200
        except requests.RequestException:
            return False
