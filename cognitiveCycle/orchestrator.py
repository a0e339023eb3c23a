"""
Cycle Orchestrator
==================

Runs one cognitive cycle per trigger in the fixed stage order
S1 → S2 → S3 → S5 → S6 → U.

Features:
- Execution plan chosen from the energy level before the cycle
- Energy consumed per stage; a shortfall ends the cycle early (degraded)
- Pause / resume honoured between stages
- Stage failures recorded on the cycle, never fatal (except empty S1)
- Logical clock and thought history fed into the next cycle's context
"""

import asyncio
import logging
import time
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from core.errors import CycleAbortedError
from core.schemas import GatewayContext
from cognitiveCycle.assessment import derive_scores
from cognitiveCycle.auditor import AuditorStage
from cognitiveCycle.compiler import CompilerStage
from cognitiveCycle.cycle_context import CycleContext
from cognitiveCycle.cycle_contracts import CycleRecord, MemoryContext, Trigger
from cognitiveCycle.energy import EnergyGate
from cognitiveCycle.individual_thought import IndividualThoughtStage
from cognitiveCycle.mutual_reflection import MutualReflectionStage
from cognitiveCycle.record_store import RecordSink
from cognitiveCycle.scribe import ScribeStage, fallback_synthesis
from cognitiveCycle.weight_update import WeightUpdateStage

logger = logging.getLogger("CognitiveCycle")

STAGE_ORDER = ("S1", "S2", "S3", "S5", "S6", "U")

STAGE_COSTS: Dict[str, float] = {"S1": 5.0, "S2": 3.0, "S3": 2.0, "S5": 3.0, "S6": 2.0, "U": 1.0}

CRITICAL_ENERGY = 10.0
LOW_ENERGY = 15.0
MODERATE_ENERGY = 25.0
ENERGY_SCALE = 100.0

EXECUTION_PLANS: Dict[str, tuple] = {
    "critical": ("S1",),
    "low": ("S1", "S6"),
    "moderate": ("S1", "S3", "S6", "U"),
    "full": STAGE_ORDER,
}


def plan_for(level: float) -> tuple:
    """Stages to run at a given energy level, in stage order."""
    if level < CRITICAL_ENERGY:
        return EXECUTION_PLANS["critical"]
    if level < LOW_ENERGY:
        return EXECUTION_PLANS["low"]
    if level < MODERATE_ENERGY:
        return EXECUTION_PLANS["moderate"]
    return EXECUTION_PLANS["full"]


class CycleOrchestrator:
    """
    Thin coordinator over the stages.

    Example:
        >>> orchestrator = CycleOrchestrator(thought_stage=IndividualThoughtStage(binding))
        >>> record = await orchestrator.run_cycle(Trigger(question="What is a promise?"))
        >>> record.stages_run
        ['S1', 'S2', 'S3', 'S5', 'S6', 'U']
    """

    def __init__(
        self,
        thought_stage: IndividualThoughtStage,
        reflection_stage: Optional[MutualReflectionStage] = None,
        auditor_stage: Optional[AuditorStage] = None,
        compiler_stage: Optional[CompilerStage] = None,
        scribe_stage: Optional[ScribeStage] = None,
        weight_stage: Optional[WeightUpdateStage] = None,
        energy: Optional[EnergyGate] = None,
        record_sink: Optional[RecordSink] = None,
        session_id: str = "default",
        history_size: int = 10,
    ):
        self.thought_stage = thought_stage
        self.reflection_stage = reflection_stage or MutualReflectionStage()
        self.auditor_stage = auditor_stage or AuditorStage()
        self.compiler_stage = compiler_stage or CompilerStage()
        self.scribe_stage = scribe_stage or ScribeStage()
        self.weight_stage = weight_stage or WeightUpdateStage()
        self.energy = energy
        self.record_sink = record_sink
        self.session_id = session_id

        self.system_clock = 0
        self.previous_thoughts: Deque[str] = deque(maxlen=history_size)
        self.question_history: Deque[str] = deque(maxlen=history_size)
        self.current: Optional[CycleContext] = None

        self._running = asyncio.Event()
        self._running.set()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def pause(self) -> None:
        """Stop before the next stage boundary."""
        logger.info("⏸️ [Cycle] Pause requested")
        self._running.clear()

    def resume(self) -> None:
        logger.info("▶️ [Cycle] Resumed")
        self._running.set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _energy_level(self) -> float:
        return self.energy.level if self.energy is not None else ENERGY_SCALE

    def _gateway_context(self, phase: str, conversation_context: Optional[str] = None) -> GatewayContext:
        return GatewayContext(
            agent_id="system",
            session_id=self.session_id,
            system_clock=self.system_clock,
            phase=phase,
            energy_level=max(0.0, min(1.0, self._energy_level() / ENERGY_SCALE)),
            previous_thoughts=list(self.previous_thoughts),
            question_history=list(self.question_history),
            conversation_context=conversation_context,
        )

    async def run_cycle(self, trigger: Trigger, memory: Optional[MemoryContext] = None) -> CycleRecord:
        """
        Run one cycle.

        Args:
            trigger: Question that starts the cycle
            memory: Carry-over offered to S1 agents

        Returns:
            CycleRecord, also handed to the record sink

        Raises:
            CycleAbortedError: S1 produced no thoughts
        """
        start = time.perf_counter()
        logger.info(f"🚀 [Cycle {self.system_clock}] Trigger: {trigger.question} ({trigger.category})")

        if self.energy is not None and not self.energy.is_sufficient(STAGE_COSTS["S1"]):
            await self.energy.wait_until_available()

        ctx = CycleContext(
            trigger=trigger,
            memory_context=memory or MemoryContext(),
            system_clock=self.system_clock,
            weights=self.weight_stage.current,
        )
        self.current = ctx

        plan = plan_for(self._energy_level())
        await ctx.skip_stages([s for s in STAGE_ORDER if s not in plan])
        if len(plan) < len(STAGE_ORDER):
            logger.info(f"🔋 [Cycle] Energy {self._energy_level():.1f}, reduced plan: {list(plan)}")

        for index, stage in enumerate(plan):
            await self._running.wait()

            if self.energy is not None and not self.energy.consume(STAGE_COSTS[stage]):
                logger.warning(f"⚠️ [Cycle] Out of energy before {stage}, ending cycle early")
                await ctx.skip_stages(list(plan[index:]))
                await ctx.mark_degraded()
                break

            try:
                await self._run_stage(stage, ctx)
            except CycleAbortedError:
                raise
            except Exception as e:
                logger.error(f"❌ [{stage}] Stage failed: {e}")
                await ctx.add_error(stage, e)
                continue
            await ctx.mark_stage(stage)

        record = ctx.to_record().model_copy(update={"duration_ms": (time.perf_counter() - start) * 1000})
        self._finish(record)
        return record

    async def _run_stage(self, stage: str, ctx: CycleContext) -> None:
        if stage == "S1":
            thoughts = await self.thought_stage.run(
                ctx.trigger, ctx.memory_context, self._gateway_context("individual_thought")
            )
            if not thoughts:
                raise CycleAbortedError("S1", "no agent produced a thought")
            await ctx.set_result("thoughts", thoughts)

        elif stage == "S2":
            reflections = await self.reflection_stage.run(ctx.thoughts, self._gateway_context("mutual_reflection"))
            await ctx.set_result("reflections", reflections)

        elif stage == "S3":
            audit = await self.auditor_stage.run(ctx.thoughts, self._gateway_context("audit"))
            await ctx.set_result("audit", audit)

        elif stage == "S5":
            synthesis = await self.compiler_stage.run(
                ctx.thoughts, ctx.reflections, ctx.audit, self._gateway_context("synthesis")
            )
            await ctx.set_result("synthesis", synthesis)

        elif stage == "S6":
            synthesis = ctx.synthesis
            if synthesis is None:
                logger.info("⏩ [S6] No synthesis available, documenting the raw thoughts")
                synthesis = fallback_synthesis(ctx.thoughts)
            documentation = await self.scribe_stage.run(synthesis, ctx.audit, self._gateway_context("documentation"))
            await ctx.set_result("documentation", documentation)

        elif stage == "U":
            scores = derive_scores(ctx.audit, ctx.reflections, ctx.thoughts)
            await ctx.set_result("scores", scores)
            result = await self.weight_stage.run(scores, self._gateway_context("weight_update"))
            await ctx.set_result("weights", result.new_weights)
            await ctx.set_result("weight_explanation", self.weight_stage.last_interpretation)

        else:
            raise ValueError(f"Unknown stage: {stage}")

    def _finish(self, record: CycleRecord) -> None:
        self.system_clock += 1
        self.question_history.append(record.trigger.question)
        self.previous_thoughts.extend(t.content for t in record.thoughts)

        if self.record_sink is not None:
            self.record_sink.save_thoughts(record.thoughts)
            if record.audit is not None:
                self.record_sink.save_audit(record.audit)
            if record.synthesis is not None:
                self.record_sink.save_synthesis(record.synthesis)
            if record.documentation is not None:
                self.record_sink.save_documentation(record.documentation)
            if "U" in record.stages_run:
                self.record_sink.save_weights(record.weights)
            self.record_sink.save_cycle(record)

        status = "degraded" if record.degraded else "complete"
        logger.info(
            f"🏁 [Cycle {record.system_clock}] {status}: ran {record.stages_run}, "
            f"skipped {record.stages_skipped} in {record.duration_ms:.0f}ms"
        )

    async def run_cycles(self, triggers: Iterable[Trigger], memory: Optional[MemoryContext] = None) -> List[CycleRecord]:
        """
        Run cycles back to back; aborted cycles are logged and skipped.
        """
        records: List[CycleRecord] = []
        for trigger in triggers:
            try:
                records.append(await self.run_cycle(trigger, memory))
            except CycleAbortedError as e:
                logger.error(f"❌ [Cycle] Aborted: {e}")
        return records
