"""
High-Level Cognitive Agent API
==============================

Developer-friendly interface that wires the gateway, the stages, the
weight engine, the energy budget and the record store.

Usage:
    Basic:
        agent = CognitiveAgent()
        record = await agent.think("Is solitude a form of dissonance?")

    Advanced:
        agent = CognitiveAgent(
            settings=Settings.from_env(),
            strategy="heuristic",
            include_consultants=False,
            rng=random.Random(7),
        )
        records = await agent.think_many(["What is a promise?", "Can a rule be kind?"])
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional

from core.resilient_executor import ResilientExecutor
from core.schemas import GatewayStats
from core.settings import Settings
from cognitiveCycle.auditor import AuditorStage
from cognitiveCycle.compiler import CompilerStage
from cognitiveCycle.cycle_contracts import CycleRecord, MemoryContext, Trigger, WeightVector
from cognitiveCycle.energy import EnergyBudget, EnergyGate
from cognitiveCycle.individual_thought import IndividualThoughtStage
from cognitiveCycle.multiplicative_weights import MultiplicativeWeightsUpdater, WeightUpdateConfig
from cognitiveCycle.mutual_reflection import MutualReflectionStage
from cognitiveCycle.orchestrator import CycleOrchestrator
from cognitiveCycle.record_store import InMemoryRecordStore, RecordSink
from cognitiveCycle.scribe import ScribeStage
from cognitiveCycle.stage_strategy import GatewayBinding
from cognitiveCycle.weight_update import WeightUpdateStage

logger = logging.getLogger("CognitiveCycle")

STRATEGIES = ("ai", "heuristic")


class CognitiveAgent:
    """
    One-call access to a full cognitive cycle.

    Example:
        >>> agent = CognitiveAgent(strategy="heuristic", include_consultants=False)
        >>> record = await agent.think("Is solitude a form of dissonance?")
        >>> len(record.thoughts)
        3
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[ResilientExecutor] = None,
        strategy: str = "ai",
        provider: Optional[str] = None,
        include_consultants: bool = True,
        energy: Optional[EnergyGate] = None,
        record_store: Optional[RecordSink] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize agent.

        Args:
            settings: Configuration (defaults when omitted)
            gateway: Prebuilt gateway; built from settings when omitted
            strategy: "ai" (gateway first, heuristic fallback) or "heuristic"
            provider: Registered provider name; defaults to settings.default_provider
            include_consultants: Add the two category-selected consultant agents
            energy: Energy gate (in-memory budget when omitted)
            record_store: Record sink (in-memory store when omitted)
            rng: Random source for weight perturbation
        """
        self.settings = settings or Settings()
        self.gateway = gateway or ResilientExecutor.from_settings(self.settings)

        if strategy.lower() not in STRATEGIES:
            logger.warning(f"⚠️ [Agent] Unknown strategy '{strategy}', using 'ai'")
            strategy = "ai"
        self.strategy = strategy.lower()

        self.provider = provider or self.settings.default_provider
        if not self.gateway.is_registered(self.provider):
            logger.warning(f"⚠️ [Agent] Provider '{self.provider}' not registered, using 'mock'")
            self.provider = "mock"

        binding = GatewayBinding(self.gateway, self.provider)
        stage_binding = binding if self.strategy == "ai" else None

        updater = MultiplicativeWeightsUpdater(
            WeightUpdateConfig(
                learning_rate=self.settings.weight_learning_rate,
                perturbation_enabled=self.settings.weight_perturbation,
            ),
            rng=rng,
        )

        self.record_store = record_store if record_store is not None else InMemoryRecordStore()
        self.energy = energy if energy is not None else EnergyBudget()
        self.orchestrator = CycleOrchestrator(
            thought_stage=IndividualThoughtStage(
                binding,
                concurrency=self.settings.thought_concurrency,
                include_consultants=include_consultants,
                ai_confidence=self.strategy == "ai",
            ),
            reflection_stage=MutualReflectionStage(stage_binding),
            auditor_stage=AuditorStage(stage_binding),
            compiler_stage=CompilerStage(stage_binding),
            scribe_stage=ScribeStage(stage_binding),
            weight_stage=WeightUpdateStage(updater, binding=stage_binding),
            energy=self.energy,
            record_sink=self.record_store,
        )

        logger.info(f"✅ [Agent] Initialized: provider={self.provider}, strategy={self.strategy}")
        logger.info(f"   Providers: {self.gateway.available_providers()}")

    async def think(
        self,
        question: str,
        category: str = "existential",
        importance: float = 0.5,
        source: str = "user",
        memory: Optional[MemoryContext] = None,
    ) -> CycleRecord:
        """
        Run one cycle on a question.

        Raises:
            CycleAbortedError: No agent produced a thought
        """
        trigger = Trigger(question=question, category=category, importance=importance, source=source)
        return await self.orchestrator.run_cycle(trigger, memory)

    async def think_many(self, questions: Iterable[str], category: str = "existential") -> List[CycleRecord]:
        triggers = [Trigger(question=q, category=category) for q in questions]
        return await self.orchestrator.run_cycles(triggers)

    def pause(self) -> None:
        self.orchestrator.pause()

    def resume(self) -> None:
        self.orchestrator.resume()

    @property
    def weights(self) -> WeightVector:
        return self.orchestrator.weight_stage.current

    async def gateway_stats(self) -> GatewayStats:
        return await self.gateway.get_stats()
