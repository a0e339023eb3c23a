"""
Multiplicative Weights Updater
==============================

Adapts the empathy / coherence / dissonance weight vector from per-cycle
assessment scores.

Each update:
1. Penalizes dimensions that fell short of their target (squared hinge loss)
2. Scales weights by exp(-learning_rate * loss) and a decay factor
3. Optionally adds a zero-sum random perturbation every N updates
4. Projects back onto the simplex restricted to [min_weight, max_weight]
5. Rounds to 3 decimals while keeping the exact sum of 1
"""

import math
import random
import logging
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, model_validator

from cognitiveCycle.cycle_contracts import AssessmentScores, WeightVector, WEIGHT_DIMENSIONS

logger = logging.getLogger("CognitiveCycle")

DEFAULT_WEIGHTS = (0.33, 0.33, 0.34)
DISSONANCE_TARGET_RATIO = 0.65
CONVERGENCE_WINDOW = 5


class WeightUpdateConfig(BaseModel):
    """Tunable parameters of the updater."""
    learning_rate: float = Field(default=0.05, gt=0.0)
    min_weight: float = Field(default=0.10, ge=0.0, le=1.0)
    max_weight: float = Field(default=0.75, ge=0.0, le=1.0)
    decay_factor: float = Field(default=0.99, gt=0.0, le=1.0)
    perturbation_enabled: bool = True
    perturbation_strength: float = Field(default=0.15, ge=0.0, le=0.5)
    perturbation_interval: int = Field(default=10, ge=1)
    history_size: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _bounds_admit_simplex(self):
        if self.min_weight >= self.max_weight:
            raise ValueError("min_weight must be below max_weight")
        if self.min_weight * 3 > 1.0 or self.max_weight * 3 < 1.0:
            raise ValueError("weight bounds must admit three weights summing to 1")
        return self


class WeightUpdateResult(BaseModel):
    """Outcome of one update."""
    new_weights: WeightVector
    update_magnitude: float
    convergence_metric: float
    explanation: str
    perturbation: Optional[Tuple[float, float, float]] = None
    numeric_collapse: bool = False


class ConvergenceStatus(BaseModel):
    """Summary of recent update behaviour."""
    is_converging: bool
    convergence_metric: float
    recent_magnitude: float
    updates_observed: int


class MultiplicativeWeightsUpdater:
    """
    Multiplicative-weights engine over the bounded 3-simplex.

    Example:
        >>> updater = MultiplicativeWeightsUpdater(rng=random.Random(7))
        >>> result = updater.update_weights(
        ...     WeightVector(),
        ...     AssessmentScores(empathy=0.9, coherence=0.4, dissonance=0.5),
        ... )
        >>> round(sum(result.new_weights.as_tuple()), 3)
        1.0
    """

    def __init__(self, config: Optional[WeightUpdateConfig] = None, rng: Optional[random.Random] = None):
        """
        Initialize updater.

        Args:
            config: Update parameters (defaults when omitted)
            rng: Random source for perturbation rounds
        """
        self.config = config or WeightUpdateConfig()
        self._rng = rng or random.Random()
        self._history: Deque[WeightUpdateResult] = deque(maxlen=self.config.history_size)
        self._update_count = 0

    def update_weights(
        self,
        current: WeightVector,
        scores: AssessmentScores,
        performance_target: float = 0.75,
        learning_rate: Optional[float] = None,
    ) -> WeightUpdateResult:
        """
        Apply one multiplicative update.

        Args:
            current: Current weight vector
            scores: Assessment of the last cycle
            performance_target: Target score for empathy and coherence
            learning_rate: Per-call override of the configured learning rate

        Returns:
            WeightUpdateResult with the new vector and diagnostics
        """
        cfg = self.config
        eta = learning_rate if learning_rate is not None else cfg.learning_rate
        self._update_count += 1
        should_perturb = cfg.perturbation_enabled and self._update_count % cfg.perturbation_interval == 0

        targets = (performance_target, performance_target, performance_target * DISSONANCE_TARGET_RATIO)
        values = [
            weight * math.exp(-eta * self._loss(score, target)) * cfg.decay_factor
            for weight, score, target in zip(current.as_tuple(), scores.as_tuple(), targets)
        ]

        perturbation = None
        if should_perturb:
            perturbation = self._generate_perturbation(cfg.perturbation_strength)
            values = [v + p for v, p in zip(values, perturbation)]
            logger.info(f"🌀 [Weights] Perturbation applied: {tuple(round(p, 4) for p in perturbation)}")

        total = sum(values)
        collapse = total <= 0 or not math.isfinite(total)
        if collapse:
            logger.warning(f"⚠️ [Weights] Numeric collapse (total={total}), resetting to defaults")
            values = list(DEFAULT_WEIGHTS)
        else:
            values = [v / total for v in values]

        values = self._project_to_bounds(values, cfg.min_weight, cfg.max_weight)
        values = self._round_preserving_sum(values, cfg.min_weight, cfg.max_weight)

        new_weights = WeightVector(
            empathy=values[0],
            coherence=values[1],
            dissonance=values[2],
            version=current.version + 1,
            timestamp=datetime.now(),
        )

        magnitude = math.sqrt(sum((n - o) ** 2 for n, o in zip(new_weights.as_tuple(), current.as_tuple())))
        convergence = self._convergence_metric()

        result = WeightUpdateResult(
            new_weights=new_weights,
            update_magnitude=magnitude,
            convergence_metric=convergence,
            explanation=self._explain(current, new_weights, magnitude),
            perturbation=perturbation,
            numeric_collapse=collapse,
        )
        self._history.append(result)
        return result

    @staticmethod
    def _loss(score: float, target: float) -> float:
        shortfall = target - score
        return shortfall * shortfall if shortfall > 0 else 0.0

    def _generate_perturbation(self, strength: float) -> Tuple[float, float, float]:
        r1 = (self._rng.random() - 0.5) * strength
        r2 = (self._rng.random() - 0.5) * strength
        return (r1, r2, -(r1 + r2))

    @staticmethod
    def _project_to_bounds(values: Sequence[float], low: float, high: float) -> List[float]:
        """
        Clamp to [low, high] and renormalize without leaving the bounds.

        Dimensions pinned at a bound stay there while the remaining mass is
        spread over the free dimensions in proportion to their values.
        """
        result = list(values)
        pinned = {}
        for _ in range(len(result) + 1):
            free = [i for i in range(len(result)) if i not in pinned]
            if not free:
                break
            remaining = 1.0 - sum(pinned.values())
            free_total = sum(result[i] for i in free)
            for i in free:
                if free_total > 0:
                    result[i] = result[i] * remaining / free_total
                else:
                    result[i] = remaining / len(free)
            violators = {i: (low if result[i] < low else high)
                         for i in free if result[i] < low or result[i] > high}
            if not violators:
                break
            pinned.update(violators)
        for i, bound in pinned.items():
            result[i] = bound
        return result

    @staticmethod
    def _round_preserving_sum(values: Sequence[float], low: float, high: float) -> List[float]:
        rounded = [round(v, 3) for v in values]
        residual = round(1.0 - sum(rounded), 3)
        if residual != 0:
            if residual > 0:
                target = max(range(len(rounded)), key=lambda i: high - rounded[i])
            else:
                target = max(range(len(rounded)), key=lambda i: rounded[i] - low)
            rounded[target] = round(rounded[target] + residual, 3)
        return rounded

    def _convergence_metric(self) -> float:
        """Mean magnitude of the previous updates, scaled to [0, 1]."""
        if len(self._history) < CONVERGENCE_WINDOW:
            return 1.0
        recent = list(self._history)[-CONVERGENCE_WINDOW:]
        average = sum(r.update_magnitude for r in recent) / len(recent)
        return max(0.0, min(1.0, average * 10))

    @staticmethod
    def _explain(old: WeightVector, new: WeightVector, magnitude: float) -> str:
        if magnitude < 0.01:
            tier = "negligible adjustment, the system is near equilibrium"
        elif magnitude < 0.05:
            tier = "minor adjustment"
        else:
            tier = "major adjustment"

        changes = [n - o for n, o in zip(new.as_tuple(), old.as_tuple())]
        largest = max(range(3), key=lambda i: abs(changes[i]))
        direction = "strengthened" if changes[largest] > 0 else "weakened"
        return f"Weights v{new.version}: {tier}; {WEIGHT_DIMENSIONS[largest]} {direction}"

    def get_convergence_status(self) -> ConvergenceStatus:
        if not self._history:
            return ConvergenceStatus(
                is_converging=False, convergence_metric=1.0, recent_magnitude=1.0, updates_observed=0
            )
        latest = self._history[-1]
        return ConvergenceStatus(
            is_converging=latest.convergence_metric < 0.1,
            convergence_metric=latest.convergence_metric,
            recent_magnitude=latest.update_magnitude,
            updates_observed=len(self._history),
        )

    def get_update_history(self) -> List[WeightUpdateResult]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
