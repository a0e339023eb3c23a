"""
Individual Thought Stage (S1)
=============================

Every agent on the roster answers the trigger independently.

Agents run concurrently under a semaphore; results are reassembled in
roster order and agents whose call failed simply contribute no thought.
"""

import asyncio
import re
import logging
from dataclasses import dataclass
from typing import List, Optional

from core.schemas import GatewayContext
from cognitiveCycle.agent_roster import AgentPersona, all_personas, build_roster
from cognitiveCycle.cycle_contracts import MemoryContext, Thought, Trigger
from cognitiveCycle.prompts import CONFIDENCE_PROMPT, CONFIDENCE_SYSTEM_PROMPT, build_thought_prompts
from cognitiveCycle.response_parsing import parse_unit_score
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

DOMAIN_TERMS = (
    "existence", "consciousness", "cognition", "essence", "truth", "contradiction", "harmony", "inquiry",
    "存在", "意識", "認識", "本質", "真理", "矛盾", "調和", "探求",
)
REASONING_CONNECTIVES = (
    "because", "however", "moreover", "therefore", "thus",
    "なぜなら", "しかし", "さらに", "つまり", "したがって",
)
QUESTION_MARKERS = ("?", "？", "でしょうか")
PERSONA_LEAK_PENALTY = 0.2


@dataclass
class ConfidenceRequest:
    """Input of the confidence strategies."""
    content: str
    persona: AgentPersona
    context: GatewayContext


def _self_identifies_as_other(content: str, persona: AgentPersona) -> bool:
    """True when the text speaks in the first person as a different roster agent."""
    lowered = content.lower()
    for other in all_personas():
        if other.id == persona.id:
            continue
        for name in other.names:
            if re.search(rf"\b(?:i am|i'm|speaking as)\s+{re.escape(name.lower())}\b", lowered):
                return True
            if f"私は{name}" in content:
                return True
    return False


def heuristic_confidence(content: str, persona: Optional[AgentPersona] = None) -> float:
    """
    Estimate confidence from length, vocabulary and structure.

    Returns:
        Confidence in [0.05, 0.95]
    """
    lowered = content.lower()
    confidence = 0.5

    length = len(content)
    if 100 < length < 1000:
        confidence += 0.2
    elif 1000 <= length < 2000:
        confidence += 0.1

    domain_hits = sum(1 for term in DOMAIN_TERMS if term in lowered)
    confidence += min(0.2, domain_hits * 0.05)

    reasoning_hits = sum(1 for word in REASONING_CONNECTIVES if word in lowered)
    confidence += min(0.15, reasoning_hits * 0.05)

    if any(marker in content for marker in QUESTION_MARKERS):
        confidence += 0.1

    if persona is not None and _self_identifies_as_other(content, persona):
        confidence -= PERSONA_LEAK_PENALTY

    return min(0.95, max(0.05, confidence))


class HeuristicConfidenceStrategy(StageStrategy[ConfidenceRequest, float]):
    name = "heuristic"

    async def run(self, request: ConfidenceRequest) -> float:
        return heuristic_confidence(request.content, request.persona)


class AIConfidenceStrategy(StageStrategy[ConfidenceRequest, float]):
    """Asks the model to rate a thought with a single number."""

    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: ConfidenceRequest) -> float:
        reply = await self.binding.generate(
            CONFIDENCE_PROMPT.format(content=request.content),
            CONFIDENCE_SYSTEM_PROMPT,
            request.context,
            agent_id=f"{request.persona.id}_rater",
            phase="confidence",
        )
        score = parse_unit_score(reply)
        if score is None:
            raise ValueError(f"No confidence value in reply: {reply[:60]!r}")
        return score


class IndividualThoughtStage:
    """
    S1: independent thoughts from the baseline and consultant agents.

    Example:
        >>> stage = IndividualThoughtStage(GatewayBinding(gateway, "mock"))
        >>> thoughts = await stage.run(trigger, MemoryContext(), GatewayContext(agent_id="system"))
    """

    def __init__(
        self,
        binding: Optional[GatewayBinding],
        concurrency: int = 5,
        include_consultants: bool = True,
        ai_confidence: bool = True,
    ):
        """
        Initialize stage.

        Args:
            binding: Gateway binding; without one no thought can be produced
            concurrency: Maximum simultaneous agent calls
            include_consultants: Add the two category-selected consultants
            ai_confidence: Rate thoughts through the gateway before the heuristic
        """
        self.binding = binding
        self.concurrency = concurrency
        self.include_consultants = include_consultants
        self.confidence = StrategyChain(
            "S1",
            fallback=HeuristicConfidenceStrategy(),
            primary=AIConfidenceStrategy(binding) if binding is not None and ai_confidence else None,
        )

    async def run(self, trigger: Trigger, memory: MemoryContext, context: GatewayContext) -> List[Thought]:
        """
        Collect one thought per agent.

        Returns:
            Thoughts in roster order; failing agents are absent
        """
        if self.binding is None:
            logger.warning("⚠️ [S1] No provider configured, no thoughts can be generated")
            return []

        roster = build_roster(trigger.category, self.include_consultants)
        logger.info(f"💭 [S1] Consulting {len(roster)} agents on: {trigger.question}")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(persona: AgentPersona) -> Thought:
            async with semaphore:
                return await self._think(persona, trigger, memory, context)

        results = await asyncio.gather(*[bounded(p) for p in roster], return_exceptions=True)

        thoughts: List[Thought] = []
        for persona, result in zip(roster, results):
            if isinstance(result, Exception):
                logger.error(f"❌ [S1] Agent {persona.id} failed: {result}")
            else:
                thoughts.append(result)
                logger.info(f"✅ [S1] {persona.id} (confidence {result.confidence:.2f})")
        return thoughts

    async def _think(
        self,
        persona: AgentPersona,
        trigger: Trigger,
        memory: MemoryContext,
        context: GatewayContext,
    ) -> Thought:
        system_prompt, prompt = build_thought_prompts(persona, trigger, memory)
        agent_context = context.model_copy(update={"agent_id": persona.id, "phase": "individual_thought"})
        content = (await self.binding.generate(prompt, system_prompt, agent_context)).strip()
        if not content:
            raise ValueError("empty thought")

        confidence = await self.confidence.run(ConfidenceRequest(content, persona, agent_context))
        return Thought(
            agent_id=persona.id,
            content=content,
            confidence=confidence,
            trigger=trigger.question,
            category=trigger.category,
            tags=frozenset({persona.style, trigger.category}),
        )
