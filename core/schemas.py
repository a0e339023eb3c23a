"""
Gateway Schemas
===============

Pydantic models exchanged between providers, the execution gateway and
its callers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):
    """Provider families the factory knows how to build."""
    MOCK = "mock"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


class ProviderConfig(BaseModel):
    """
    Static configuration of one text-generation provider.

    Example:
        ProviderConfig(
            kind=ProviderKind.OPENROUTER,
            model="xiaomi/mimo-v2-flash:free",
            fallback=ProviderConfig(kind=ProviderKind.MOCK, model="mock-1"),
        )
    """
    model_config = ConfigDict(frozen=True)

    kind: ProviderKind = Field(..., description="Provider family")
    model: str = Field(..., description="Model identifier")
    name: Optional[str] = Field(default=None, description="Label used in execution paths")
    api_key: Optional[str] = Field(default=None, description="Credential, if the provider needs one")
    endpoint: Optional[str] = Field(default=None, description="Base URL override")
    max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_ms: int = Field(default=30000, gt=0, description="Bound on a single attempt")
    retry_attempts: int = Field(default=3, ge=0, description="Retries after the first attempt")
    fallback: Optional[ProviderConfig] = Field(default=None, description="Escalation target")

    @property
    def label(self) -> str:
        return self.name or self.kind.value


class ProviderResponse(BaseModel):
    """Raw result of a single provider call."""
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GatewayContext(BaseModel):
    """Cycle context the gateway folds into every prompt."""
    agent_id: str
    session_id: str = "default"
    system_clock: int = 0
    phase: str = "individual_thought"
    energy_level: float = Field(default=1.0, ge=0.0, le=1.0)
    previous_thoughts: List[str] = Field(default_factory=list)
    question_history: List[str] = Field(default_factory=list)
    conversation_context: Optional[str] = None


class QualityMetrics(BaseModel):
    """Heuristic quality of a piece of generated text."""
    model_config = ConfigDict(frozen=True)

    coherence: float = Field(ge=0.0, le=1.0)
    creativity: float = Field(ge=0.0, le=1.0)
    depth: float = Field(ge=0.0, le=1.0)
    relevance: float = Field(ge=0.0, le=1.0)
    philosophical_depth: float = Field(ge=0.0, le=1.0)

    def mean(self) -> float:
        values = (self.coherence, self.creativity, self.depth, self.relevance, self.philosophical_depth)
        return sum(values) / len(values)


class ExecutionMetadata(BaseModel):
    """How a result was obtained."""
    model_config = ConfigDict(frozen=True)

    retry_count: int = 0
    fallback_used: bool = False
    cache_hit: bool = False
    execution_path: List[str] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """
    Outcome of one gateway execution.

    Instances are frozen; the cache hands out copies with ``cache_hit``
    set instead of the stored entry.
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    provider_used: str
    model_used: str
    processing_time_ms: float = 0.0
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    quality_metrics: QualityMetrics
    metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)
    timestamp: datetime = Field(default_factory=datetime.now)

    def as_cache_hit(self) -> ExecutionResult:
        """Return a detached copy flagged as served from cache."""
        metadata = self.metadata.model_copy(update={"cache_hit": True}, deep=True)
        return self.model_copy(update={"metadata": metadata}, deep=True)


class ProviderProbe(BaseModel):
    """Result of a provider health probe."""
    success: bool
    latency_ms: float
    error: Optional[str] = None


class GatewayStats(BaseModel):
    """Point-in-time snapshot of gateway statistics."""
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    cache_hits: int = 0
    average_latency_ms: float = 0.0
    average_confidence: float = 0.0
    provider_usage: Dict[str, int] = Field(default_factory=dict)
    model_usage: Dict[str, int] = Field(default_factory=dict)
    quality_trends: Dict[str, List[float]] = Field(default_factory=dict)
    cache_size: int = 0
    recent_executions: List[ExecutionResult] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions
