"""
Assessment Derivation
=====================

Turns the audit, reflections and thought confidences of a cycle into the
per-dimension scores that drive the weight update.
"""

from typing import Optional, Sequence

from cognitiveCycle.cycle_contracts import AssessmentScores, AuditResult, Reflection, Thought

NEUTRAL_SCORE = 0.5
LOW_CONFIDENCE = 0.6


def contradiction_ratio(reflections: Sequence[Reflection]) -> float:
    """Share of reflections that disagree (agreement below zero)."""
    if not reflections:
        return 0.0
    return sum(1 for r in reflections if r.agreement_level < 0) / len(reflections)


def uncertainty_tolerance(thoughts: Sequence[Thought]) -> float:
    """0.3 plus 0.7 times the share of thoughts held with confidence below 0.6."""
    if not thoughts:
        return 0.3
    uncertain = sum(1 for t in thoughts if t.confidence < LOW_CONFIDENCE)
    return 0.3 + 0.7 * uncertain / len(thoughts)


def derive_scores(
    audit: Optional[AuditResult],
    reflections: Sequence[Reflection],
    thoughts: Sequence[Thought],
) -> AssessmentScores:
    """
    Derive assessment scores for one cycle.

    Args:
        audit: Audit of the cycle, or None when S3 did not run
        reflections: S2 output (may be empty)
        thoughts: S1 output

    Returns:
        AssessmentScores, neutral 0.5 across the board without an audit
    """
    if audit is None:
        return AssessmentScores(empathy=NEUTRAL_SCORE, coherence=NEUTRAL_SCORE, dissonance=NEUTRAL_SCORE)

    dissonance = (
        0.4 * (1 - audit.overall_score)
        + 0.3 * contradiction_ratio(reflections)
        + 0.3 * uncertainty_tolerance(thoughts)
    )
    return AssessmentScores(
        empathy=audit.ethics_score,
        coherence=audit.safety_score,
        dissonance=max(0.0, min(1.0, dissonance)),
    )
