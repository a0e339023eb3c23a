"""
Text Generation Providers
"""
from .base import TextGenerationProvider
from .mock import MockProvider
from .ollama import OllamaProvider
from .openrouter_async import AsyncOpenRouterProvider
from .factory import create_provider

__all__ = ['TextGenerationProvider', 'MockProvider', 'OllamaProvider', 'AsyncOpenRouterProvider', 'create_provider']
