"""Cognitive cycle: stage pipeline, weight engine and orchestrator"""
from .cycle_contracts import (
    AssessmentScores,
    AuditResult,
    CycleRecord,
    DocumentationResult,
    MemoryContext,
    Reflection,
    RiskLevel,
    SynthesisResult,
    Thought,
    Trigger,
    WeightVector,
)
from .multiplicative_weights import MultiplicativeWeightsUpdater, WeightUpdateConfig, WeightUpdateResult
from .orchestrator import CycleOrchestrator
from .agent import CognitiveAgent

__all__ = [
    "AssessmentScores",
    "AuditResult",
    "CycleRecord",
    "DocumentationResult",
    "MemoryContext",
    "Reflection",
    "RiskLevel",
    "SynthesisResult",
    "Thought",
    "Trigger",
    "WeightVector",
    "MultiplicativeWeightsUpdater",
    "WeightUpdateConfig",
    "WeightUpdateResult",
    "CycleOrchestrator",
    "CognitiveAgent",
]
