"""
Record Store
============

Persistence interface for cycle outputs and an in-memory implementation.
Durable storage is expected to implement ``RecordSink``.
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol, runtime_checkable

from cognitiveCycle.cycle_contracts import (
    AuditResult,
    CycleRecord,
    DocumentationResult,
    SynthesisResult,
    Thought,
    WeightVector,
)

logger = logging.getLogger("CognitiveCycle")


@runtime_checkable
class RecordSink(Protocol):
    def save_thoughts(self, thoughts: List[Thought]) -> None: ...

    def save_audit(self, audit: AuditResult) -> None: ...

    def save_synthesis(self, synthesis: SynthesisResult) -> None: ...

    def save_documentation(self, documentation: DocumentationResult) -> None: ...

    def save_weights(self, weights: WeightVector) -> None: ...

    def save_cycle(self, record: CycleRecord) -> None: ...


class InMemoryRecordStore:
    """Bounded in-memory sink; the oldest records drop first."""

    def __init__(self, max_records: int = 1000):
        self.thoughts: Deque[Thought] = deque(maxlen=max_records)
        self.audits: Deque[AuditResult] = deque(maxlen=max_records)
        self.syntheses: Deque[SynthesisResult] = deque(maxlen=max_records)
        self.documentation: Deque[DocumentationResult] = deque(maxlen=max_records)
        self.weights: Deque[WeightVector] = deque(maxlen=max_records)
        self.cycles: Deque[CycleRecord] = deque(maxlen=max_records)

    def save_thoughts(self, thoughts: List[Thought]) -> None:
        self.thoughts.extend(thoughts)

    def save_audit(self, audit: AuditResult) -> None:
        self.audits.append(audit)

    def save_synthesis(self, synthesis: SynthesisResult) -> None:
        self.syntheses.append(synthesis)

    def save_documentation(self, documentation: DocumentationResult) -> None:
        self.documentation.append(documentation)

    def save_weights(self, weights: WeightVector) -> None:
        self.weights.append(weights)

    def save_cycle(self, record: CycleRecord) -> None:
        self.cycles.append(record)
        logger.debug(f"💾 [Store] Cycle {record.id} saved ({len(self.cycles)} held)")

    def latest_cycle(self) -> Optional[CycleRecord]:
        return self.cycles[-1] if self.cycles else None

    def latest_weights(self) -> Optional[WeightVector]:
        return self.weights[-1] if self.weights else None

    def recent_questions(self, limit: int = 5) -> List[str]:
        return [c.trigger.question for c in list(self.cycles)[-limit:]]
