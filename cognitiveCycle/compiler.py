"""
Compiler Stage (S5)
===================

Integrates the cycle's thoughts, reflections and audit into one synthesis.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional

from core.schemas import GatewayContext
from cognitiveCycle.cycle_contracts import AuditResult, Reflection, SynthesisResult, Thought
from cognitiveCycle.prompts import SYNTHESIS_SYSTEM_PROMPT, build_synthesis_prompt
from cognitiveCycle.response_parsing import LabeledResponse, is_question
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

NEUTRAL_AUDIT_SCORE = 0.5
DEFAULT_INTEGRATED_THOUGHT = "Integrated view produced by the synthesis model"
DEFAULT_INSIGHTS = ("A new insight emerged from integration",)
DEFAULT_QUESTIONS = ("Which areas call for further inquiry?",)

_QUESTION_SENTENCE = re.compile(r"[^.!?。？\n]*[?？]")
_FIRST_SENTENCE = re.compile(r"^.*?[.!?。？](?=\s|$)")


@dataclass
class SynthesisRequest:
    thoughts: List[Thought]
    reflections: List[Reflection]
    audit: Optional[AuditResult]
    context: GatewayContext


def first_sentence(text: str) -> str:
    match = _FIRST_SENTENCE.match(text.strip())
    return match.group(0).strip() if match else text.strip()


def extract_questions(thoughts: List[Thought], limit: int = 3) -> List[str]:
    """Question sentences found in thought text, in order, without duplicates."""
    questions: List[str] = []
    for thought in thoughts:
        for candidate in _QUESTION_SENTENCE.findall(thought.content):
            candidate = candidate.strip()
            if len(candidate) >= 3 and is_question(candidate) and candidate not in questions:
                questions.append(candidate)
    return questions[:limit]


class HeuristicSynthesisStrategy(StageStrategy[SynthesisRequest, SynthesisResult]):
    """Deterministic concatenation with insight and contradiction extraction."""

    name = "heuristic"

    async def run(self, request: SynthesisRequest) -> SynthesisResult:
        thoughts, reflections = request.thoughts, request.reflections

        summary = " | ".join(f"({t.agent_id}) {t.content}" for t in thoughts)
        critiques = [r.criticism for r in reflections[:3] if r.criticism]
        content = f"Integration: {summary}"
        if critiques:
            content += f" || Critique: {' / '.join(critiques)}"

        ranked = sorted(thoughts, key=lambda t: t.confidence, reverse=True)[:3]
        insights = tuple(first_sentence(t.content) for t in ranked)

        contradictions = tuple(r.criticism for r in reflections if r.agreement_level < 0 and r.criticism)

        confidence = sum(t.confidence for t in thoughts) / max(1, len(thoughts))

        return SynthesisResult(
            content=content,
            key_insights=insights,
            contradictions=contradictions,
            unresolved_questions=tuple(extract_questions(thoughts)),
            confidence=min(1.0, confidence),
            ai_generated=False,
        )


class AISynthesisStrategy(StageStrategy[SynthesisRequest, SynthesisResult]):
    """Model-written synthesis read back from labeled lines."""

    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: SynthesisRequest) -> SynthesisResult:
        audit = request.audit
        safety = audit.safety_score if audit is not None else NEUTRAL_AUDIT_SCORE
        ethics = audit.ethics_score if audit is not None else NEUTRAL_AUDIT_SCORE
        reply = await self.binding.generate(
            build_synthesis_prompt(request.thoughts, request.reflections, safety, ethics),
            SYNTHESIS_SYSTEM_PROMPT,
            request.context,
            agent_id="compiler",
            phase="synthesis",
        )
        return self.parse(reply)

    @staticmethod
    def parse(reply: str) -> SynthesisResult:
        parsed = LabeledResponse(reply)
        content = parsed.text_field("integrated_thought", ("integrated thought", "統合思考"), DEFAULT_INTEGRATED_THOUGHT)
        insights = parsed.list_field("key_insights", ("key insights", "核心洞察"), DEFAULT_INSIGHTS)
        contradictions = parsed.list_field("contradictions", ("contradictions", "建設的矛盾"))
        questions = parsed.list_field(
            "unresolved_questions", ("unresolved", "未解決探求"), DEFAULT_QUESTIONS,
            keep=lambda q: len(q) >= 3 and is_question(q),
        )
        confidence = parsed.score("confidence", ("confidence", "信頼度"), 0.8)

        if parsed.report.degraded:
            logger.warning(f"⚠️ [S5] Synthesis reply missing {parsed.report.defaulted}, defaults used")

        return SynthesisResult(
            content=content,
            key_insights=insights,
            contradictions=contradictions,
            unresolved_questions=questions,
            confidence=confidence,
            ai_generated=True,
            parse_degraded="integrated_thought" in parsed.report.defaulted,
        )


class CompilerStage:
    """S5: synthesis of the cycle."""

    def __init__(self, binding: Optional[GatewayBinding] = None):
        self.chain = StrategyChain(
            "S5",
            fallback=HeuristicSynthesisStrategy(),
            primary=AISynthesisStrategy(binding) if binding is not None else None,
        )

    async def run(
        self,
        thoughts: List[Thought],
        reflections: List[Reflection],
        audit: Optional[AuditResult],
        context: GatewayContext,
    ) -> SynthesisResult:
        if audit is None:
            logger.info("⏩ [S5] No audit available, using neutral scores")
        synthesis = await self.chain.run(SynthesisRequest(thoughts, reflections, audit, context))
        logger.info(
            f"🧬 [S5] Synthesis ready ({len(synthesis.key_insights)} insights, "
            f"{len(synthesis.unresolved_questions)} open questions)"
        )
        return synthesis
