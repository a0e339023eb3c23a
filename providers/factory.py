"""
Provider Factory
================

Maps a ProviderConfig to a concrete provider client.
"""

from core.schemas import ProviderConfig, ProviderKind
from providers.base import TextGenerationProvider
from providers.mock import MockProvider
from providers.ollama import OllamaProvider
from providers.openrouter_async import AsyncOpenRouterProvider


def create_provider(config: ProviderConfig) -> TextGenerationProvider:
    """
    Instantiate the client described by a config.

    Args:
        config: Provider configuration

    Returns:
        Provider client

    Raises:
        ValueError: If the config is incomplete (e.g. missing API key)
    """
    timeout_seconds = config.timeout_ms / 1000

    if config.kind == ProviderKind.MOCK:
        return MockProvider(model=config.model)

    if config.kind == ProviderKind.OPENROUTER:
        kwargs = {}
        if config.endpoint:
            kwargs["base_url"] = config.endpoint
        return AsyncOpenRouterProvider(
            model=config.model,
            api_key=config.api_key,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=timeout_seconds,
            **kwargs
        )

    if config.kind == ProviderKind.OLLAMA:
        return OllamaProvider(
            model=config.model,
            base_url=config.endpoint or "http://localhost:11434",
            temperature=config.temperature,
            timeout=timeout_seconds,
        )

    raise ValueError(f"Unsupported provider kind: {config.kind}")
