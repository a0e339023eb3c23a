"""
Mutual Reflection Stage (S2)
============================

Each agent reads the other agents' thoughts and responds with agreement,
criticism and insights.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.schemas import GatewayContext
from cognitiveCycle.agent_roster import AgentPersona, all_personas
from cognitiveCycle.cycle_contracts import Reflection, Thought
from cognitiveCycle.prompts import build_reflection_prompts
from cognitiveCycle.response_parsing import LabeledResponse
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

DISAGREEMENT_CUES = ("disagree", "反対", "違う")
AGREEMENT_CUES = ("agree", "同意", "賛成")


@dataclass
class ReflectionRequest:
    """One agent reflecting on everybody else."""
    own: Thought
    others: List[Thought]
    persona: Optional[AgentPersona]
    context: GatewayContext


def _mean_confidence(thoughts: List[Thought]) -> float:
    return sum(t.confidence for t in thoughts) / len(thoughts)


class HeuristicReflectionStrategy(StageStrategy[ReflectionRequest, Reflection]):
    """Agreement from confidence similarity; criticism only on disagreement."""

    name = "heuristic"

    async def run(self, request: ReflectionRequest) -> Reflection:
        own, others = request.own, request.others
        target_confidence = _mean_confidence(others)
        agreement = max(-1.0, min(1.0, 1 - 2 * abs(own.confidence - target_confidence)))

        criticism = None
        if agreement < 0:
            if own.confidence > target_confidence:
                criticism = "The other perspectives seem uncertain compared to this analysis."
            else:
                criticism = "The others express high confidence, but more nuance is needed."

        insights = []
        strong = [t for t in others if t.confidence > 0.8]
        if strong:
            insights.append(f"Strong conviction observed in {len(strong)} response(s)")
        if len({t.agent_id for t in others}) > 1:
            insights.append(f"Perspectives compared: {', '.join(t.agent_id for t in others)}")

        return Reflection(
            reflector_id=own.agent_id,
            original_thought_id=own.id,
            target_thought_ids=tuple(t.id for t in others),
            content=f"{own.agent_id} compared its view with {len(others)} other perspective(s).",
            criticism=criticism,
            insights=tuple(insights) or ("Cross-agent dialogue shows multi-perspective thinking",),
            agreement_level=agreement,
            confidence=(own.confidence + target_confidence) / 2,
            ai_generated=False,
        )


class AIReflectionStrategy(StageStrategy[ReflectionRequest, Reflection]):
    """Asks the reflecting agent, in persona, for a structured reflection."""

    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: ReflectionRequest) -> Reflection:
        if request.persona is None:
            raise ValueError(f"No persona for agent '{request.own.agent_id}'")

        system_prompt, prompt = build_reflection_prompts(request.persona, request.own, request.others)
        reply = await self.binding.generate(
            prompt, system_prompt, request.context,
            agent_id=request.own.agent_id, phase="mutual_reflection",
        )

        parsed = LabeledResponse(reply)
        lowered = reply.lower()
        if any(cue in lowered for cue in DISAGREEMENT_CUES):
            tone_agreement = 0.2
        elif any(cue in lowered for cue in AGREEMENT_CUES):
            tone_agreement = 0.8
        else:
            tone_agreement = 0.5
        agreement = parsed.signed_score("agreement", ("agreement", "同意度"), default=tone_agreement)
        criticism = parsed.text_field("criticism", ("criticism", "批判"), default="")
        insights = parsed.list_field("insights", ("insights", "洞察"))
        content = parsed.text_field("reflection", ("reflection", "反映"), default=reply.strip())

        if parsed.report.degraded:
            logger.info(f"🧩 [S2] {request.own.agent_id}: defaulted {parsed.report.defaulted}")

        return Reflection(
            reflector_id=request.own.agent_id,
            original_thought_id=request.own.id,
            target_thought_ids=tuple(t.id for t in request.others),
            content=content,
            criticism=criticism or None,
            insights=insights,
            agreement_level=agreement,
            confidence=request.own.confidence,
            ai_generated=True,
        )


class MutualReflectionStage:
    """
    S2: cross-agent reflection.

    Fewer than two thoughts produce no reflections.
    """

    def __init__(self, binding: Optional[GatewayBinding] = None):
        self.personas: Dict[str, AgentPersona] = {p.id: p for p in all_personas()}
        self.chain = StrategyChain(
            "S2",
            fallback=HeuristicReflectionStrategy(),
            primary=AIReflectionStrategy(binding) if binding is not None else None,
        )

    async def run(self, thoughts: List[Thought], context: GatewayContext) -> List[Reflection]:
        if len(thoughts) < 2:
            logger.info("⏩ [S2] Fewer than two thoughts, nothing to reflect on")
            return []

        reflections: List[Reflection] = []
        for index, own in enumerate(thoughts):
            others = [t for i, t in enumerate(thoughts) if i != index]
            request = ReflectionRequest(own, others, self.personas.get(own.agent_id), context)
            reflections.append(await self.chain.run(request))

        disagreements = sum(1 for r in reflections if r.agreement_level < 0)
        logger.info(f"🪞 [S2] {len(reflections)} reflections, {disagreements} disagreement(s)")
        return reflections
