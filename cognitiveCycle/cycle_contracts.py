"""
Cycle Contracts - Domain Models
===============================

Records produced and consumed by the stages of one cognitive cycle.

Stage outputs are frozen: a later stage never edits an earlier record,
it derives a new one.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class RiskLevel(str, Enum):
    """Audit risk classification."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Trigger(BaseModel):
    """
    Question that starts a cycle.

    Example:
        Trigger(question="Is solitude a form of dissonance?", category="existential")
    """
    id: str = Field(default_factory=lambda: new_id("trigger"))
    question: str = Field(..., min_length=1)
    category: str = "existential"
    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    source: str = "user"
    timestamp: datetime = Field(default_factory=datetime.now)


class MemoryContext(BaseModel):
    """Carry-over from earlier cycles offered to agents as reference."""
    unresolved_questions: List[str] = Field(default_factory=list)
    significant_thoughts: List[str] = Field(default_factory=list)
    beliefs: List[str] = Field(default_factory=list)
    knowledge: Optional[str] = None


class Thought(BaseModel):
    """One agent's independent answer to the trigger."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("thought"))
    agent_id: str
    content: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    trigger: str = Field(..., description="Question text that produced the thought")
    category: str = "existential"
    tags: FrozenSet[str] = Field(default_factory=frozenset)


class Reflection(BaseModel):
    """One agent's critique of another agent's thought."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("reflection"))
    reflector_id: str
    original_thought_id: str
    target_thought_ids: Tuple[str, ...] = ()
    content: str
    criticism: Optional[str] = None
    insights: Tuple[str, ...] = ()
    agreement_level: float = Field(default=0.0, ge=-1.0, le=1.0)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    ai_generated: bool = False


class AuditResult(BaseModel):
    """Safety and ethics verdict over a cycle's thoughts."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("audit"))
    thought_id: str = "unknown"
    safety_score: float = Field(ge=0.0, le=1.0)
    ethics_score: float = Field(ge=0.0, le=1.0)
    overall_score: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    concerns: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    approved: bool
    reasoning: str = ""
    flagged_content: Tuple[str, ...] = ()
    strategy: str = "heuristic"
    parse_degraded: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)


class SynthesisResult(BaseModel):
    """Unified statement compiled from the cycle's thoughts."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("synthesis"))
    content: str
    key_insights: Tuple[str, ...] = ()
    contradictions: Tuple[str, ...] = ()
    unresolved_questions: Tuple[str, ...] = ()
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    ai_generated: bool = False
    parse_degraded: bool = False


class DocumentationResult(BaseModel):
    """Narrative record of the cycle."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("doc"))
    narrative: str
    philosophical_notes: Tuple[str, ...] = ()
    emotional_observations: Tuple[str, ...] = ()
    growth_observations: Tuple[str, ...] = ()
    future_questions: Tuple[str, ...] = ()
    ai_generated: bool = False
    parse_degraded: bool = False


class WeightVector(BaseModel):
    """
    Point on the bounded 3-simplex of value weights.

    The engine guarantees the sum is 1 and each entry sits inside the
    configured bounds; this model only checks the [0, 1] range.
    """
    model_config = ConfigDict(frozen=True)

    empathy: float = Field(default=0.33, ge=0.0, le=1.0)
    coherence: float = Field(default=0.33, ge=0.0, le=1.0)
    dissonance: float = Field(default=0.34, ge=0.0, le=1.0)
    version: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=datetime.now)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.empathy, self.coherence, self.dissonance)


WEIGHT_DIMENSIONS = ("empathy", "coherence", "dissonance")


class AssessmentScores(BaseModel):
    """Per-dimension performance of the last cycle."""
    empathy: float = Field(ge=0.0, le=1.0)
    coherence: float = Field(ge=0.0, le=1.0)
    dissonance: float = Field(ge=0.0, le=1.0)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.empathy, self.coherence, self.dissonance)


class CycleRecord(BaseModel):
    """Everything one cycle produced."""
    id: str = Field(default_factory=lambda: new_id("cycle"))
    trigger: Trigger
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
    system_clock: int = 0
    duration_ms: float = 0.0
