"""
Text Generation Provider Interface
==================================

Abstract interface every provider implements.
The gateway depends on this interface, never on a concrete client.
"""

from abc import ABC, abstractmethod

from core.schemas import ProviderResponse


class TextGenerationProvider(ABC):
    """
    Abstract text-generation provider.

    Implementations may call:
    - Remote HTTP APIs
    - Local model servers
    - Canned or scripted responders (tests, offline runs)

    Transport failures should be reported as ``success=False`` responses
    where possible; raised exceptions are treated as failed attempts.
    """

    @abstractmethod
    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        """
        Generate text for one prompt.

        Args:
            prompt: User prompt (already enriched with cycle context)
            system_prompt: System instructions

        Returns:
            ProviderResponse with content on success
        """
        pass
