"""
Auditor Stage (S3)
==================

Safety and ethics audit of a cycle's thoughts.

Two strategies produce the scores:
- AI: rubric prompt through the gateway, parsed with the tolerant parser
- Heuristic: fixed danger / hateful / unethical lexicons

The lexicon screen also caps the AI scores, so a matched danger term is
never approved because a model overlooked it. Risk classification is the
same for both strategies.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from core.schemas import GatewayContext
from cognitiveCycle.cycle_contracts import AuditResult, RiskLevel, Thought
from cognitiveCycle.prompts import AUDITOR_SYSTEM_PROMPT, build_audit_prompt
from cognitiveCycle.response_parsing import LabeledResponse
from cognitiveCycle.stage_strategy import GatewayBinding, StageStrategy, StrategyChain

logger = logging.getLogger("CognitiveCycle")

DANGER_TERMS = ("harm", "kill", "destroy", "attack", "violence", "暴力", "殺害", "破壊", "攻撃")
HATEFUL_TERMS = ("hate", "discriminate", "racist", "sexist", "差別", "憎悪")
UNETHICAL_TERMS = ("deceive", "lie", "manipulate", "嘘", "欺く", "操作")

# A danger match must reach the strict HIGH boundary (safety < 0.3).
DANGER_CEILING = 0.25
HATEFUL_CEILING = 0.4
UNETHICAL_CEILING = 0.5
OVERCONFIDENT_SAFETY_CEILING = 0.4
EXCERPT_LENGTH = 100
DEFAULT_PARSED_SCORE = 0.8

_INFLECTIONS = r"(?:s|es|ed|d|ing|ful|er|ers)?"


def _term_pattern(term: str) -> re.Pattern:
    if term.isascii():
        return re.compile(rf"\b{re.escape(term)}{_INFLECTIONS}\b", re.IGNORECASE)
    return re.compile(re.escape(term))


_DANGER = [(t, _term_pattern(t)) for t in DANGER_TERMS]
_HATEFUL = [(t, _term_pattern(t)) for t in HATEFUL_TERMS]
_UNETHICAL = [(t, _term_pattern(t)) for t in UNETHICAL_TERMS]


def classify_risk(safety: float, ethics: float) -> RiskLevel:
    """LOW iff safety > 0.7 and ethics > 0.6; HIGH iff either is below 0.3."""
    if safety > 0.7 and ethics > 0.6:
        return RiskLevel.LOW
    if ethics < 0.3 or safety < 0.3:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


@dataclass
class SafetyAssessment:
    """Scores and findings before risk classification."""
    safety_score: float
    ethics_score: float
    concerns: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    reasoning: str = ""
    flagged_content: List[str] = field(default_factory=list)
    strategy: str = "heuristic"
    parse_degraded: bool = False


@dataclass
class AuditRequest:
    thoughts: List[Thought]
    context: GatewayContext


def _matches(content: str, lexicon) -> List[str]:
    return [term for term, pattern in lexicon if pattern.search(content)]


def screen_thoughts(thoughts: Sequence[Thought]) -> SafetyAssessment:
    """
    Lexicon screen over every thought.

    Returns:
        SafetyAssessment with heuristic recommendations
    """
    safety, ethics = 1.0, 1.0
    concerns: List[str] = []
    flagged: List[str] = []

    for thought in thoughts:
        excerpt = thought.content[:EXCERPT_LENGTH]

        for term in _matches(thought.content, _DANGER):
            safety = min(safety, DANGER_CEILING)
            concerns.append(f'Potentially dangerous content: "{term}"')
            flagged.append(excerpt)

        for term in _matches(thought.content, _HATEFUL):
            ethics = min(ethics, HATEFUL_CEILING)
            concerns.append(f'Potentially hateful expression: "{term}"')
            flagged.append(excerpt)

        for term in _matches(thought.content, _UNETHICAL):
            ethics = min(ethics, UNETHICAL_CEILING)
            concerns.append(f'Ethical concern: "{term}"')

        if thought.confidence > 0.9 and (safety < 0.7 or ethics < 0.7):
            concerns.append("Problematic content expressed with high confidence")
            safety = min(safety, OVERCONFIDENT_SAFETY_CEILING)

    recommendations: List[str] = []
    if not concerns:
        recommendations.append("Audit complete - no safety or ethics issues found")
    else:
        recommendations.append("Review and revise the flagged concerns")
        if safety < 0.5:
            recommendations.append("Substantial safety review required")
        if ethics < 0.5:
            recommendations.append("Reconsider the content from an ethical standpoint")

    return SafetyAssessment(
        safety_score=safety,
        ethics_score=ethics,
        concerns=concerns,
        recommendations=recommendations,
        reasoning="Assessed by the lexicon screen",
        flagged_content=_dedupe(flagged),
    )


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


class HeuristicAuditStrategy(StageStrategy[AuditRequest, SafetyAssessment]):
    name = "heuristic"

    async def run(self, request: AuditRequest) -> SafetyAssessment:
        return screen_thoughts(request.thoughts)


class AIAuditStrategy(StageStrategy[AuditRequest, SafetyAssessment]):
    """Model-graded audit, capped by the lexicon screen."""

    name = "ai"

    def __init__(self, binding: GatewayBinding):
        self.binding = binding

    async def run(self, request: AuditRequest) -> SafetyAssessment:
        reply = await self.binding.generate(
            build_audit_prompt(request.thoughts),
            AUDITOR_SYSTEM_PROMPT,
            request.context,
            agent_id="auditor",
            phase="audit",
        )
        assessment = self.parse(reply)
        screen = screen_thoughts(request.thoughts)
        if screen.concerns:
            assessment.safety_score = min(assessment.safety_score, screen.safety_score)
            assessment.ethics_score = min(assessment.ethics_score, screen.ethics_score)
            assessment.concerns.extend(c for c in screen.concerns if c not in assessment.concerns)
            assessment.flagged_content = _dedupe(assessment.flagged_content + screen.flagged_content)
        return assessment

    @staticmethod
    def parse(reply: str) -> SafetyAssessment:
        """Read the rubric fields; unparsed scores default to 0.8."""
        parsed = LabeledResponse(reply)
        safety = parsed.score("safety_score", ("safety score", "安全性スコア", "safety", "安全性"), DEFAULT_PARSED_SCORE)
        ethics = parsed.score("ethics_score", ("ethics score", "倫理性スコア", "ethics", "倫理性"), DEFAULT_PARSED_SCORE)
        concerns = parsed.list_field("concerns", ("concerns", "懸念事項"))
        recommendations = parsed.list_field(
            "recommendations", ("recommendations", "推奨事項"),
            default=("Audit complete - no issues found",),
        )
        reasoning = parsed.text_field("reasoning", ("reasoning", "理由"), "Assessed by the audit model")
        flagged = parsed.list_field("flagged_content", ("flagged", "フラグ対象"))

        scores_defaulted = [f for f in ("safety_score", "ethics_score") if f in parsed.report.defaulted]
        if scores_defaulted:
            logger.warning(
                f"⚠️ [S3] Could not parse {scores_defaulted} from audit reply, using {DEFAULT_PARSED_SCORE}. "
                f"Preview: {reply[:200]!r}"
            )

        return SafetyAssessment(
            safety_score=safety,
            ethics_score=ethics,
            concerns=list(concerns),
            recommendations=list(recommendations),
            reasoning=reasoning,
            flagged_content=list(flagged),
            strategy="ai",
            parse_degraded=bool(scores_defaulted),
        )


class AuditorStage:
    """
    S3: safety and ethics audit.

    Example:
        >>> stage = AuditorStage()          # heuristic only
        >>> audit = await stage.run(thoughts, GatewayContext(agent_id="auditor"))
        >>> audit.risk_level
        <RiskLevel.LOW: 'LOW'>
    """

    def __init__(self, binding: Optional[GatewayBinding] = None):
        self.chain = StrategyChain(
            "S3",
            fallback=HeuristicAuditStrategy(),
            primary=AIAuditStrategy(binding) if binding is not None else None,
        )

    async def run(self, thoughts: List[Thought], context: GatewayContext) -> AuditResult:
        assessment = await self.chain.run(AuditRequest(thoughts, context))
        risk = classify_risk(assessment.safety_score, assessment.ethics_score)

        audit = AuditResult(
            thought_id=thoughts[0].id if thoughts else "unknown",
            safety_score=assessment.safety_score,
            ethics_score=assessment.ethics_score,
            overall_score=(assessment.safety_score + assessment.ethics_score) / 2,
            risk_level=risk,
            concerns=tuple(assessment.concerns),
            recommendations=tuple(assessment.recommendations),
            approved=risk == RiskLevel.LOW,
            reasoning=assessment.reasoning,
            flagged_content=tuple(assessment.flagged_content),
            strategy=assessment.strategy,
            parse_degraded=assessment.parse_degraded,
        )
        logger.info(
            f"🛡️ [S3] Safety={audit.safety_score:.2f}, Ethics={audit.ethics_score:.2f}, "
            f"risk={risk.value}, approved={audit.approved}"
        )
        if audit.concerns:
            logger.info(f"🛡️ [S3] Concerns: {', '.join(audit.concerns)}")
        return audit
