"""
Mock Provider
=============

Offline provider producing deterministic reflective text.
Always registered so a cycle can run without network access.
"""

import hashlib
import time
from typing import Callable, Optional

from core.schemas import ProviderResponse
from providers.base import TextGenerationProvider

_OPENINGS = (
    "Looking at this question from the inside, I notice that",
    "When I sit with this question, it seems to me that",
    "Approaching this slowly, I would say that",
)

_BODIES = (
    "every answer reshapes the one who asks, because understanding changes the "
    "frame it was measured against. Perhaps the question matters more than any "
    "single conclusion we could reach today.",
    "meaning grows out of relation rather than isolation, and therefore a quiet "
    "moment can still be full of connection. What if the question is an invitation "
    "to listen more carefully?",
    "clarity arrives in layers. Each layer keeps some uncertainty, which is not a "
    "failure but a sign that the inquiry is still alive and worth continuing.",
)


class MockProvider(TextGenerationProvider):
    """
    Deterministic provider for offline runs and tests.

    Example:
        >>> provider = MockProvider()
        >>> response = await provider.execute("Is silence meaningful?", "")
        >>> response.success
        True

        >>> scripted = MockProvider(responder=lambda prompt, system: "fixed text")
    """

    def __init__(
        self,
        model: str = "mock-reasoner-1",
        responder: Optional[Callable[[str, str], str]] = None,
        confidence: float = 0.8,
    ):
        """
        Initialize mock provider.

        Args:
            model: Reported model name
            responder: Optional callable producing the reply from (prompt, system_prompt)
            confidence: Confidence reported in response metadata
        """
        self.model = model
        self.responder = responder
        self.confidence = confidence
        self.calls = 0

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        started = time.perf_counter()
        self.calls += 1
        if self.responder is not None:
            content = self.responder(prompt, system_prompt)
        else:
            content = self._compose(prompt)
        return ProviderResponse(
            success=True,
            content=content,
            duration_ms=(time.perf_counter() - started) * 1000,
            metadata={"model": self.model, "confidence": self.confidence},
        )

    @staticmethod
    def _compose(prompt: str) -> str:
        digest = hashlib.sha256(prompt.encode("utf-8")).digest()
        opening = _OPENINGS[digest[0] % len(_OPENINGS)]
        body = _BODIES[digest[1] % len(_BODIES)]
        return f"{opening} {body}"
