"""
Scribe Stage (S6)
=================

Records the cycle as a short narrative with notes and follow-up questions.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from core.schemas import GatewayContext
from cognitiveCycle.cycle_contracts import AuditResult, DocumentationResult, SynthesisResult, Thought
from cognitiveCycle.prompts import SCRIBE_SYSTEM_PROMPT, build_documentation_prompt
from cognitiveCycle.response_parsing import LabeledResponse, is_question
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

NARRATIVE_EXCERPT = 200

DEFAULT_NARRATIVE = "The inquiry continues. Each question opens another, and the search itself becomes the record."
DEFAULT_PHILOSOPHICAL_NOTES = (
    "Understanding is made of questions.",
    "Contradiction is a source of new ideas.",
)
DEFAULT_EMOTIONAL_OBSERVATIONS = ("Curiosity remains steady.",)
DEFAULT_GROWTH_OBSERVATIONS = ("Integration across perspectives improved.",)
DEFAULT_FUTURE_QUESTIONS = (
    "What does real understanding require?",
    "How should coherence and dissonance be balanced?",
)


@dataclass
class DocumentationRequest:
    synthesis: SynthesisResult
    audit: Optional[AuditResult]
    context: GatewayContext


def fallback_synthesis(thoughts: List[Thought]) -> SynthesisResult:
    """
    Minimal synthesis for cycles where the compiler did not run.

    Args:
        thoughts: Thoughts of the current cycle

    Returns:
        SynthesisResult joining the thoughts, confidence = mean confidence
    """
    content = " | ".join(f"({t.agent_id}) {t.content}" for t in thoughts) or "No thoughts were recorded."
    confidence = sum(t.confidence for t in thoughts) / len(thoughts) if thoughts else 0.5
    return SynthesisResult(content=content, confidence=confidence, ai_generated=False)


def build_narrative(synthesis: SynthesisResult) -> str:
    return f"The cycle synthesized multiple voices into a coherent thread: {synthesis.content[:NARRATIVE_EXCERPT]}"


class HeuristicDocumentationStrategy(StageStrategy[DocumentationRequest, DocumentationResult]):
    name = "heuristic"

    async def run(self, request: DocumentationRequest) -> DocumentationResult:
        synthesis = request.synthesis
        notes = list(synthesis.key_insights[:2]) or list(DEFAULT_PHILOSOPHICAL_NOTES)
        growth = ["Perspective diversity increased through mutual reflection."]
        if synthesis.contradictions:
            growth.append(f"{len(synthesis.contradictions)} contradiction(s) kept open for later cycles.")
        if request.audit is not None and request.audit.concerns:
            growth.append("The audit raised concerns that should shape the next cycle.")

        return DocumentationResult(
            narrative=build_narrative(synthesis),
            philosophical_notes=tuple(notes),
            emotional_observations=(f"Confidence carried by the synthesis: {synthesis.confidence:.2f}",),
            growth_observations=tuple(growth),
            future_questions=synthesis.unresolved_questions or DEFAULT_FUTURE_QUESTIONS,
            ai_generated=False,
        )


class AIDocumentationStrategy(StageStrategy[DocumentationRequest, DocumentationResult]):
    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: DocumentationRequest) -> DocumentationResult:
        reply = await self.binding.generate(
            build_documentation_prompt(request.synthesis, request.audit),
            SCRIBE_SYSTEM_PROMPT,
            request.context,
            agent_id="scribe",
            phase="documentation",
        )
        return self.parse(reply)

    @staticmethod
    def parse(reply: str) -> DocumentationResult:
        parsed = LabeledResponse(reply)
        narrative = parsed.text_field("narrative", ("narrative", "詩的物語", "詩的記録"), DEFAULT_NARRATIVE)
        notes = parsed.list_field("philosophical_notes", ("philosophical", "哲学的洞察"), DEFAULT_PHILOSOPHICAL_NOTES)
        emotional = parsed.list_field("emotional_observations", ("emotional", "感情的観察"), DEFAULT_EMOTIONAL_OBSERVATIONS)
        growth = parsed.list_field("growth_observations", ("growth", "成長記録"), DEFAULT_GROWTH_OBSERVATIONS)
        questions = parsed.list_field(
            "future_questions", ("future", "未来問い"), DEFAULT_FUTURE_QUESTIONS,
            keep=lambda q: len(q) >= 3 and is_question(q),
        )

        if parsed.report.degraded:
            logger.warning(f"⚠️ [S6] Documentation reply missing {parsed.report.defaulted}, defaults used")

        return DocumentationResult(
            narrative=narrative,
            philosophical_notes=notes,
            emotional_observations=emotional,
            growth_observations=growth,
            future_questions=questions,
            ai_generated=True,
            parse_degraded="narrative" in parsed.report.defaulted,
        )


class ScribeStage:
    """S6: documentation of the cycle."""

    def __init__(self, binding: Optional[GatewayBinding] = None):
        self.chain = StrategyChain(
            "S6",
            fallback=HeuristicDocumentationStrategy(),
            primary=AIDocumentationStrategy(binding) if binding is not None else None,
        )

    async def run(
        self,
        synthesis: SynthesisResult,
        audit: Optional[AuditResult],
        context: GatewayContext,
    ) -> DocumentationResult:
        documentation = await self.chain.run(DocumentationRequest(synthesis, audit, context))
        logger.info(f"📜 [S6] {documentation.narrative[:80]}")
        return documentation
