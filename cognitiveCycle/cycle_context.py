"""
Cycle Context
=============

Async-safe scratch memory for one cycle, using asyncio.Lock.

Stages run in sequence, but the context is also read by pause/resume
callers and status queries while a stage is awaiting, so every mutation
goes through the lock.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from cognitiveCycle.cycle_contracts import (
    AssessmentScores,
    AuditResult,
    CycleRecord,
    DocumentationResult,
    MemoryContext,
    Reflection,
    SynthesisResult,
    Thought,
    Trigger,
    WeightVector,
)


class CycleContext(BaseModel):
    """
    Working state of the cycle in progress.

    All mutation methods are async and hold the lock.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    trigger: Trigger
    memory_context: MemoryContext = Field(default_factory=MemoryContext)
    system_clock: int = 0

    thoughts: List[Thought] = Field(default_factory=list)
    reflections: List[Reflection] = Field(default_factory=list)
    audit: Optional[AuditResult] = None
    synthesis: Optional[SynthesisResult] = None
    documentation: Optional[DocumentationResult] = None
    scores: Optional[AssessmentScores] = None
    weights: WeightVector = Field(default_factory=WeightVector)
    weight_explanation: Optional[str] = None

    stages_run: List[str] = Field(default_factory=list)
    stages_skipped: List[str] = Field(default_factory=list)
    stage_errors: List[str] = Field(default_factory=list)
    degraded: bool = False

    memory: Dict[str, Any] = Field(default_factory=dict, description="Arbitrary memory")
    start_time: datetime = Field(default_factory=datetime.now)

    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    async def set_result(self, key: str, value: Any) -> None:
        """Store a stage output on its named field (async-safe)."""
        async with self._lock:
            setattr(self, key, value)

    async def mark_stage(self, stage: str) -> None:
        async with self._lock:
            self.stages_run.append(stage)

    async def skip_stages(self, stages: List[str]) -> None:
        async with self._lock:
            self.stages_skipped.extend(s for s in stages if s not in self.stages_skipped)

    async def add_error(self, stage: str, error: Exception) -> None:
        async with self._lock:
            self.stage_errors.append(f"{stage}: {type(error).__name__}: {error}")
            self.degraded = True

    async def mark_degraded(self) -> None:
        async with self._lock:
            self.degraded = True

    async def set_memory(self, key: str, value: Any) -> None:
        async with self._lock:
            self.memory[key] = value

    async def get_memory(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            return self.memory.get(key, default)

    def to_record(self) -> CycleRecord:
        """Freeze the context into the record handed to the sink."""
        return CycleRecord(
            trigger=self.trigger,
            thoughts=list(self.thoughts),
            reflections=list(self.reflections),
            audit=self.audit,
            synthesis=self.synthesis,
            documentation=self.documentation,
            scores=self.scores,
            weights=self.weights,
            weight_explanation=self.weight_explanation,
            stages_run=list(self.stages_run),
            stages_skipped=list(self.stages_skipped),
            stage_errors=list(self.stage_errors),
            degraded=self.degraded,
            system_clock=self.system_clock,
            duration_ms=(datetime.now() - self.start_time).total_seconds() * 1000,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Serializable summary for logging and status queries."""
        return {
            "trigger": self.trigger.question,
            "system_clock": self.system_clock,
            "thoughts": len(self.thoughts),
            "reflections": len(self.reflections),
            "risk_level": self.audit.risk_level.value if self.audit else None,
            "stages_run": list(self.stages_run),
            "stages_skipped": list(self.stages_skipped),
            "degraded": self.degraded,
            "memory": {k: str(v) for k, v in self.memory.items()},
        }
