"""
Shared fixtures: scripted providers, a gateway with recorded backoff and
frozen thoughts.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import random
from typing import List, Optional

import pytest

from core.resilient_executor import ResilientExecutor
from core.schemas import GatewayContext, ProviderConfig, ProviderKind, ProviderResponse
from providers.base import TextGenerationProvider
from providers.mock import MockProvider
from cognitiveCycle.cycle_contracts import Thought


class ScriptedProvider(TextGenerationProvider):
    """Replays a fixed list of responses, then repeats the last one."""

    def __init__(self, responses: List[ProviderResponse]):
        self.responses = list(responses)
        self.calls = 0
        self.prompts: List[str] = []

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        self.prompts.append(prompt)
        response = self.responses[min(self.calls, len(self.responses) - 1)]
        self.calls += 1
        return response


class FailingProvider(TextGenerationProvider):
    """Always raises."""

    def __init__(self, message: str = "service unavailable"):
        self.message = message
        self.calls = 0

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        self.calls += 1
        raise ConnectionError(self.message)


def ok(content: str) -> ProviderResponse:
    return ProviderResponse(success=True, content=content)


def failed(error: str = "boom") -> ProviderResponse:
    return ProviderResponse(success=False, error=error)


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def gateway(sleep_recorder) -> ResilientExecutor:
    return ResilientExecutor(sleep=sleep_recorder)


@pytest.fixture
def context() -> GatewayContext:
    return GatewayContext(agent_id="theoria", phase="individual_thought")


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


def mock_config(model: str = "mock-reasoner-1", retry_attempts: int = 0, fallback: Optional[ProviderConfig] = None):
    return ProviderConfig(kind=ProviderKind.MOCK, model=model, retry_attempts=retry_attempts, fallback=fallback)


def gateway_with(provider: TextGenerationProvider, sleep=None, name: str = "mock") -> ResilientExecutor:
    """Gateway with a single provider registered under ``name``."""
    executor = ResilientExecutor(sleep=sleep or SleepRecorder())
    executor.register_provider(name, mock_config(), client=provider)
    return executor


def scripted_mock(text: str) -> MockProvider:
    return MockProvider(responder=lambda prompt, system: text)


def make_thought(agent_id: str, content: str, confidence: float = 0.7, category: str = "existential") -> Thought:
    return Thought(
        agent_id=agent_id,
        content=content,
        confidence=confidence,
        trigger="Is solitude a form of dissonance?",
        category=category,
    )
