"""
Response Quality Scoring
========================

Cheap lexical heuristics applied to every successful gateway response.

Cue vocabularies are bilingual (English and Japanese) because agents may
answer in either language. English cues are matched case-insensitively,
Japanese cues as plain substrings.
"""

import re
from typing import Iterable, Optional

from core.schemas import QualityMetrics

COUNTERFACTUAL_CUES = ("why", "what if", "なぜ", "もし")
DEPTH_CUES = ("deeply", "essence", "深く", "本質")
CAUSAL_CUES = ("because", "therefore", "なぜなら", "つまり")
ABSTRACT_TERMS = (
    "existence", "truth", "consciousness", "freedom", "meaning", "essence",
    "存在", "真理", "意識", "自由", "意味", "本質",
)

DEFAULT_PROVIDER_CONFIDENCE = 0.75

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_EMPHASIS = re.compile(r"[?!]")


def _clamp(value: float, low: float, high: float = 1.0) -> float:
    return min(high, max(low, value))


def _contains_any(text: str, cues: Iterable[str]) -> bool:
    return any(cue in text for cue in cues)


def assess_quality(content: str, previous_thoughts: Iterable[str] = ()) -> QualityMetrics:
    """
    Score generated text on five heuristic dimensions.

    Args:
        content: Generated text
        previous_thoughts: Recent thoughts used to judge relevance

    Returns:
        QualityMetrics with every value in its floor..1 range, rounded to 3 decimals
    """
    lowered = content.lower()
    words = len(content.split())
    # Trailing fragments count as a sentence, so "a. b." has three.
    sentences = len(_SENTENCE_SPLIT.split(content))

    coherence = _clamp((words / sentences) / 15, 0.3)

    creativity = _clamp(
        len(_EMPHASIS.findall(content)) / max(1, sentences)
        + (0.3 if _contains_any(lowered, COUNTERFACTUAL_CUES) else 0.0),
        0.2,
    )

    depth = _clamp(
        words / 100
        + (0.2 if _contains_any(lowered, DEPTH_CUES) else 0.0)
        + (0.2 if _contains_any(lowered, CAUSAL_CUES) else 0.0),
        0.3,
    )

    related = any(
        thought and thought.lower()[:10] in lowered
        for thought in previous_thoughts
    )
    relevance = _clamp(0.8 if related else 0.6, 0.4)

    philosophical = _clamp(
        0.2 + sum(0.15 for term in ABSTRACT_TERMS if term in lowered),
        0.2,
    )

    return QualityMetrics(
        coherence=round(coherence, 3),
        creativity=round(creativity, 3),
        depth=round(depth, 3),
        relevance=round(relevance, 3),
        philosophical_depth=round(philosophical, 3),
    )


def compute_confidence(
    content: str,
    metrics: QualityMetrics,
    provider_confidence: Optional[float] = None,
) -> float:
    """
    Blend provider-reported confidence with measured quality and length.

    Returns:
        Confidence in [0.1, 1.0]
    """
    base = DEFAULT_PROVIDER_CONFIDENCE if provider_confidence is None else provider_confidence
    length_bonus = min(0.1, len(content) / 1000)
    return _clamp(base * 0.6 + metrics.mean() * 0.3 + length_bonus, 0.1)
