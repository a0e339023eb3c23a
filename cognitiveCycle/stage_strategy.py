"""
Stage Strategy Interface
========================

Abstract interface for the two variants every stage offers, and the chain
that runs the AI variant first and degrades to the heuristic one.

Stages depend on this interface, never on how a variant produces its result.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from core.resilient_executor import ResilientExecutor
from core.schemas import GatewayContext

logger = logging.getLogger("CognitiveCycle")

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


class StageStrategy(ABC, Generic[RequestT, ResultT]):
    """
    One way of producing a stage result.

    Implementations can use:
    - The execution gateway (AI variant)
    - Deterministic rules (heuristic variant)
    """

    name = "strategy"

    @abstractmethod
    async def run(self, request: RequestT) -> ResultT:
        """
        Produce the stage result.

        Args:
            request: Stage-specific request

        Returns:
            Stage-specific result

        Raises:
            Exception: Any failure; the chain degrades to the next variant
        """
        pass


class StrategyChain(Generic[RequestT, ResultT]):
    """
    AI variant with heuristic fallback.

    The AI variant is skipped when absent. Its failures are logged and
    never propagate.
    """

    def __init__(
        self,
        stage: str,
        fallback: StageStrategy[RequestT, ResultT],
        primary: Optional[StageStrategy[RequestT, ResultT]] = None,
    ):
        self.stage = stage
        self.primary = primary
        self.fallback = fallback

    async def run(self, request: RequestT) -> ResultT:
        if self.primary is not None:
            try:
                return await self.primary.run(request)
            except Exception as e:
                logger.warning(f"⚠️ [{self.stage}] {self.primary.name} strategy failed, using {self.fallback.name}: {e}")
        return await self.fallback.run(request)


class GatewayBinding:
    """
    A gateway plus the provider name the AI variants should use.

    Example:
        >>> binding = GatewayBinding(gateway, "mock")
        >>> text = await binding.generate(prompt, system_prompt, context, agent_id="auditor", phase="audit")
    """

    def __init__(self, gateway: ResilientExecutor, provider_name: str):
        self.gateway = gateway
        self.provider_name = provider_name

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        context: GatewayContext,
        **context_updates: Any,
    ) -> str:
        """
        Execute through the gateway and return the content.

        Raises:
            ProviderUnavailableError, ExecutionExhaustedError: From the gateway
        """
        if context_updates:
            context = context.model_copy(update=context_updates)
        result = await self.gateway.execute_with_context(self.provider_name, prompt, system_prompt, context)
        return result.content or ""
