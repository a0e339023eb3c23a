"""
Weight Update Stage (U)
=======================

Owns the current weight vector and applies one multiplicative update per
cycle. It is the only writer of the vector.

Learning rate adapts to the updater's state:
- 0.12 once updates have converged (exploration boost)
- 0.15 on a paradigm shift
- the configured rate otherwise
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.schemas import GatewayContext
from cognitiveCycle.cycle_contracts import AssessmentScores, WeightVector
from cognitiveCycle.multiplicative_weights import MultiplicativeWeightsUpdater, WeightUpdateResult
from cognitiveCycle.prompts import WEIGHT_INTERPRETER_SYSTEM_PROMPT, build_weight_interpretation_prompt
from cognitiveCycle.response_parsing import LabeledResponse
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

CONVERGED_LEARNING_RATE = 0.12
PARADIGM_SHIFT_LEARNING_RATE = 0.15
CONVERGED_METRIC = 0.05
MIN_UPDATES_FOR_CONVERGENCE = 5


@dataclass
class InterpretationRequest:
    old: WeightVector
    result: WeightUpdateResult
    context: GatewayContext


class HeuristicInterpretationStrategy(StageStrategy[InterpretationRequest, str]):
    name = "heuristic"

    async def run(self, request: InterpretationRequest) -> str:
        return request.result.explanation


class AIInterpretationStrategy(StageStrategy[InterpretationRequest, str]):
    """Asks a model to describe where the weights are heading."""

    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: InterpretationRequest) -> str:
        reply = await self.binding.generate(
            build_weight_interpretation_prompt(request.old, request.result.new_weights),
            WEIGHT_INTERPRETER_SYSTEM_PROMPT,
            request.context,
            agent_id="weight_interpreter",
            phase="weight_update",
        )
        parsed = LabeledResponse(reply)
        direction = parsed.text_field("evolution_direction", ("evolution", "進化方向"), "Steady evolution continues")
        balance = parsed.text_field("balance", ("balance", "バランス"), "Dynamic equilibrium is adjusting")
        return f"{request.result.explanation}. {direction}; {balance}"


class WeightUpdateStage:
    """
    U: adaptive multiplicative weight update.

    Example:
        >>> stage = WeightUpdateStage(MultiplicativeWeightsUpdater())
        >>> result = await stage.run(AssessmentScores(empathy=0.9, coherence=0.9, dissonance=0.4))
        >>> stage.current.version
        1
    """

    def __init__(
        self,
        updater: Optional[MultiplicativeWeightsUpdater] = None,
        initial: Optional[WeightVector] = None,
        binding: Optional[GatewayBinding] = None,
    ):
        self.updater = updater or MultiplicativeWeightsUpdater()
        self._current = initial or WeightVector()
        self.last_interpretation: Optional[str] = None
        self.interpreter = StrategyChain(
            "U",
            fallback=HeuristicInterpretationStrategy(),
            primary=AIInterpretationStrategy(binding) if binding is not None else None,
        )

    @property
    def current(self) -> WeightVector:
        return self._current

    def learning_rate(self, paradigm_shift: bool = False) -> float:
        status = self.updater.get_convergence_status()
        converged = (
            status.is_converging
            and status.convergence_metric < CONVERGED_METRIC
            and status.updates_observed >= MIN_UPDATES_FOR_CONVERGENCE
        )
        if converged:
            logger.info(f"🔄 [U] Convergence detected, learning rate {CONVERGED_LEARNING_RATE}")
            return CONVERGED_LEARNING_RATE
        if paradigm_shift:
            logger.info(f"⚡ [U] Paradigm shift, learning rate {PARADIGM_SHIFT_LEARNING_RATE}")
            return PARADIGM_SHIFT_LEARNING_RATE
        return self.updater.config.learning_rate

    async def run(
        self,
        scores: AssessmentScores,
        context: Optional[GatewayContext] = None,
        paradigm_shift: bool = False,
        performance_target: float = 0.75,
    ) -> WeightUpdateResult:
        """
        Update the current weights from the cycle's scores.

        Args:
            scores: Assessment of the cycle
            context: Gateway context for the optional interpretation call
            paradigm_shift: Raise the learning rate for this update
            performance_target: Target for empathy and coherence

        Returns:
            WeightUpdateResult; the stage's current vector is replaced
        """
        old = self._current
        result = self.updater.update_weights(
            old, scores,
            performance_target=performance_target,
            learning_rate=self.learning_rate(paradigm_shift),
        )
        self._current = result.new_weights

        new = result.new_weights
        logger.info(
            f"⚖️ [U] E={new.empathy:.3f} C={new.coherence:.3f} D={new.dissonance:.3f} "
            f"(v{new.version}, convergence {result.convergence_metric:.3f})"
        )

        context = context or GatewayContext(agent_id="weight_interpreter", phase="weight_update")
        self.last_interpretation = await self.interpreter.run(InterpretationRequest(old, result, context))
        return result

    def reset(self, weights: Optional[WeightVector] = None) -> None:
        self._current = weights or WeightVector()
        self.updater.clear_history()
