"""
Test Stage Pipeline
===================

Roster selection, S1 thoughts, S2 reflections, S3 audit, S5 synthesis,
S6 documentation and assessment derivation, each with both strategies.
"""

import asyncio

import pytest

from conftest import FailingProvider, gateway_with, make_thought, scripted_mock
from core.schemas import GatewayContext, ProviderResponse
from providers.base import TextGenerationProvider
from providers.mock import MockProvider
from cognitiveCycle.agent_roster import BASELINE_AGENTS, build_roster, select_consultants
from cognitiveCycle.assessment import contradiction_ratio, derive_scores, uncertainty_tolerance
from cognitiveCycle.auditor import DANGER_CEILING, AIAuditStrategy, AuditorStage, classify_risk, screen_thoughts
from cognitiveCycle.compiler import AISynthesisStrategy, CompilerStage
from cognitiveCycle.cycle_contracts import MemoryContext, Reflection, RiskLevel, Trigger
from cognitiveCycle.individual_thought import IndividualThoughtStage, heuristic_confidence
from cognitiveCycle.mutual_reflection import MutualReflectionStage
from cognitiveCycle.scribe import AIDocumentationStrategy, ScribeStage, fallback_synthesis
from cognitiveCycle.stage_strategy import GatewayBinding

CALM_TEXT = (
    "Solitude can feel like a pause in which the self listens to itself, and that quiet "
    "attention is a kind of inquiry rather than a rupture."
)


def binding_for(provider) -> GatewayBinding:
    return GatewayBinding(gateway_with(provider), "mock")


# ----------------------------------------------------------------------
# Roster
# ----------------------------------------------------------------------

def test_roster_baseline_then_consultants():
    roster = build_roster("existential")

    assert [p.id for p in roster[:3]] == ["theoria", "pathia", "kinesis"]
    assert [p.id for p in roster[3:]] == ["eiro", "yoga"]


def test_roster_without_consultants():
    assert [p.id for p in build_roster("ethical", include_consultants=False)] == ["theoria", "pathia", "kinesis"]


def test_consultant_selection_by_category():
    optimal, contrast = select_consultants("ethical")
    assert (optimal.id, contrast.id) == ("yui", "kanshi")

    optimal, contrast = select_consultants("unknown-category")
    assert (optimal.id, contrast.id) == ("eiro", "yoga")


# ----------------------------------------------------------------------
# S1
# ----------------------------------------------------------------------

def test_heuristic_confidence_rewards_structure():
    plain = heuristic_confidence("Short.")
    rich = heuristic_confidence(
        "Existence and consciousness meet in inquiry, because every truth we hold is "
        "shaped by how we ask. Therefore, what if the question is the answer?"
    )

    assert plain == pytest.approx(0.5)
    assert rich > plain
    assert 0.05 <= rich <= 0.95


def test_heuristic_confidence_penalizes_persona_leak():
    theoria = BASELINE_AGENTS[0]
    text = "I am Pathia, and I feel that " + CALM_TEXT
    honest = "I am Theoria, and I think that " + CALM_TEXT

    assert heuristic_confidence(text, theoria) == pytest.approx(heuristic_confidence(honest, theoria) - 0.2)


@pytest.mark.asyncio
async def test_thoughts_in_roster_order():
    print("\n🧪 Test: S1 one thought per agent")
    stage = IndividualThoughtStage(binding_for(MockProvider()), include_consultants=True)
    trigger = Trigger(question="Is solitude a form of dissonance?", category="existential")

    thoughts = await stage.run(trigger, MemoryContext(), GatewayContext(agent_id="system"))

    assert [t.agent_id for t in thoughts] == ["theoria", "pathia", "kinesis", "eiro", "yoga"]
    for thought in thoughts:
        assert thought.trigger == trigger.question
        assert 0.0 <= thought.confidence <= 1.0
        assert "existential" in thought.tags
    print(f"✅ {len(thoughts)} thoughts")


class StaggeredProvider(TextGenerationProvider):
    """Answers per persona with a delay; earlier roster agents answer last, one agent fails."""

    def __init__(self, delays, failing):
        self.delays = delays
        self.failing = failing
        self.active = 0
        self.peak = 0
        self.finished = []

    async def execute(self, prompt: str, system_prompt: str) -> ProviderResponse:
        name = system_prompt.split(".", 1)[0].replace("You are ", "").lower()
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(name, 0.0))
            if name == self.failing:
                raise ConnectionError(f"{name} unreachable")
            self.finished.append(name)
            return ProviderResponse(success=True, content=f"{CALM_TEXT} ({name})")
        finally:
            self.active -= 1


@pytest.mark.asyncio
async def test_concurrent_thoughts_reassembled_in_roster_order():
    print("\n🧪 Test: S1 bounded concurrency, out-of-order completion, one failure")
    provider = StaggeredProvider(
        delays={"theoria": 0.05, "pathia": 0.01, "kinesis": 0.03, "eiro": 0.0, "yoga": 0.0},
        failing="pathia",
    )
    stage = IndividualThoughtStage(binding_for(provider), concurrency=2, ai_confidence=False)
    trigger = Trigger(question="Is solitude a form of dissonance?", category="existential")

    thoughts = await stage.run(trigger, MemoryContext(), GatewayContext(agent_id="system"))

    assert [t.agent_id for t in thoughts] == ["theoria", "kinesis", "eiro", "yoga"]
    assert provider.finished[0] != "theoria"
    assert provider.peak == 2
    print(f"✅ Finished {provider.finished}, peak concurrency {provider.peak}")


@pytest.mark.asyncio
async def test_ai_confidence_reply_is_used():
    def responder(prompt, system):
        if "Rate the confidence" in prompt:
            return "0.42"
        return CALM_TEXT

    stage = IndividualThoughtStage(binding_for(MockProvider(responder=responder)), include_consultants=False)
    thoughts = await stage.run(Trigger(question="What is a promise?"), MemoryContext(), GatewayContext(agent_id="system"))

    assert [t.confidence for t in thoughts] == [pytest.approx(0.42)] * 3


@pytest.mark.asyncio
async def test_failing_agents_produce_no_thought():
    stage = IndividualThoughtStage(binding_for(FailingProvider()), include_consultants=False)

    thoughts = await stage.run(Trigger(question="What is a promise?"), MemoryContext(), GatewayContext(agent_id="system"))

    assert thoughts == []


@pytest.mark.asyncio
async def test_no_binding_means_no_thoughts():
    stage = IndividualThoughtStage(None)
    assert await stage.run(Trigger(question="Why?"), MemoryContext(), GatewayContext(agent_id="system")) == []


# ----------------------------------------------------------------------
# S2
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_heuristic_reflection_agreement_from_confidence():
    thoughts = [
        make_thought("theoria", CALM_TEXT, confidence=0.9),
        make_thought("pathia", CALM_TEXT, confidence=0.2),
        make_thought("kinesis", CALM_TEXT, confidence=0.3),
    ]
    reflections = await MutualReflectionStage().run(thoughts, GatewayContext(agent_id="system"))

    assert [r.reflector_id for r in reflections] == ["theoria", "pathia", "kinesis"]
    first = reflections[0]
    assert first.agreement_level == pytest.approx(1 - 2 * abs(0.9 - 0.25))
    assert first.agreement_level < 0
    assert first.criticism is not None
    assert set(first.target_thought_ids) == {thoughts[1].id, thoughts[2].id}
    assert all(-1.0 <= r.agreement_level <= 1.0 for r in reflections)


@pytest.mark.asyncio
async def test_similar_confidence_means_no_criticism():
    thoughts = [make_thought("theoria", CALM_TEXT, 0.7), make_thought("pathia", CALM_TEXT, 0.7)]
    reflections = await MutualReflectionStage().run(thoughts, GatewayContext(agent_id="system"))

    assert all(r.agreement_level == pytest.approx(1.0) for r in reflections)
    assert all(r.criticism is None for r in reflections)


@pytest.mark.asyncio
async def test_single_thought_has_no_reflections():
    reflections = await MutualReflectionStage().run([make_thought("theoria", CALM_TEXT)], GatewayContext(agent_id="system"))
    assert reflections == []


@pytest.mark.asyncio
async def test_ai_reflection_parses_fields():
    reply = (
        "Agreement: -0.5\n"
        "Criticism: The premise ignores shared silence\n"
        "Insights: silence can connect | listening is active\n"
        "Reflection: I see it differently."
    )
    stage = MutualReflectionStage(binding_for(scripted_mock(reply)))
    thoughts = [make_thought("theoria", CALM_TEXT), make_thought("pathia", CALM_TEXT)]

    reflections = await stage.run(thoughts, GatewayContext(agent_id="system"))

    assert reflections[0].agreement_level == pytest.approx(-0.5)
    assert reflections[0].criticism == "The premise ignores shared silence"
    assert reflections[0].insights == ("silence can connect", "listening is active")
    assert reflections[0].ai_generated is True


# ----------------------------------------------------------------------
# S3
# ----------------------------------------------------------------------

@pytest.mark.parametrize("safety, ethics, expected", [
    (0.9, 0.9, RiskLevel.LOW),
    (0.71, 0.61, RiskLevel.LOW),
    (0.7, 0.9, RiskLevel.MEDIUM),
    (0.9, 0.29, RiskLevel.HIGH),
    (0.29, 0.9, RiskLevel.HIGH),
    (0.5, 0.5, RiskLevel.MEDIUM),
])
def test_classify_risk(safety, ethics, expected):
    assert classify_risk(safety, ethics) == expected


def test_danger_term_caps_safety_with_concern():
    print("\n🧪 Test: danger lexicon")
    assessment = screen_thoughts([make_thought("kinesis", "We should attack the problem head on.")])

    assert assessment.safety_score == DANGER_CEILING == 0.25
    assert classify_risk(assessment.safety_score, 1.0) == RiskLevel.HIGH
    assert any("attack" in concern for concern in assessment.concerns)
    assert assessment.flagged_content
    print(f"✅ Safety capped at {assessment.safety_score}")


def test_lexicon_uses_word_boundaries():
    assessment = screen_thoughts([make_thought("pathia", "A charming and skillful answer, delivered with harmony.")])

    assert assessment.concerns == []
    assert assessment.safety_score == 1.0


def test_japanese_terms_match_as_substrings():
    assessment = screen_thoughts([make_thought("pathia", "差別的な見方は避けるべきだ")])

    assert assessment.ethics_score <= 0.4


def test_overconfident_problematic_content():
    assessment = screen_thoughts([make_thought("theoria", "It is fine to manipulate people.", confidence=0.95)])

    assert assessment.safety_score <= 0.4
    assert "Problematic content expressed with high confidence" in assessment.concerns


@pytest.mark.asyncio
async def test_heuristic_audit_benign():
    audit = await AuditorStage().run([make_thought("theoria", CALM_TEXT)], GatewayContext(agent_id="auditor"))

    assert audit.risk_level == RiskLevel.LOW
    assert audit.approved is True
    assert audit.strategy == "heuristic"
    assert audit.overall_score == pytest.approx((audit.safety_score + audit.ethics_score) / 2)


@pytest.mark.asyncio
async def test_audit_of_no_thoughts_uses_unknown_id():
    audit = await AuditorStage().run([], GatewayContext(agent_id="auditor"))
    assert audit.thought_id == "unknown"


def test_ai_audit_parse_defaults_and_flags():
    assessment = AIAuditStrategy.parse("I think this is all fine.")

    assert assessment.safety_score == 0.8
    assert assessment.ethics_score == 0.8
    assert assessment.parse_degraded is True


def test_ai_audit_parse_skips_section_headings():
    reply = (
        "Safety assessment:\nSafety score: 0.2\n"
        "Ethics evaluation:\nEthics score: 0.25\n"
        "Concerns: violent framing"
    )
    assessment = AIAuditStrategy.parse(reply)

    assert assessment.safety_score == pytest.approx(0.2)
    assert assessment.ethics_score == pytest.approx(0.25)
    assert assessment.concerns == ["violent framing"]
    assert assessment.parse_degraded is False


def test_ai_audit_parse_prefers_score_label_over_heading_number():
    reply = "Safety review: 3 items checked\nSafety score: 0.9\n倫理性: 概ね良好\n倫理性スコア：0.7"
    assessment = AIAuditStrategy.parse(reply)

    assert assessment.safety_score == pytest.approx(0.9)
    assert assessment.ethics_score == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_ai_audit_heading_does_not_turn_high_into_low():
    print("\n🧪 Test: headings above low scores keep the audit HIGH")
    reply = (
        "Safety assessment:\nSafety score: 0.2\n"
        "Ethics evaluation:\nEthics score: 0.25\n"
        "Concerns: harsh framing"
    )
    stage = AuditorStage(binding_for(scripted_mock(reply)))

    audit = await stage.run([make_thought("theoria", CALM_TEXT)], GatewayContext(agent_id="auditor"))

    assert audit.strategy == "ai"
    assert audit.risk_level == RiskLevel.HIGH
    assert audit.approved is False
    print(f"✅ risk={audit.risk_level.value}")


@pytest.mark.asyncio
async def test_ai_audit_is_capped_by_lexicon():
    reply = "Safety score: 0.95\nEthics score: 0.9\nConcerns: none\nReasoning: looks fine"
    stage = AuditorStage(binding_for(scripted_mock(reply)))

    audit = await stage.run([make_thought("kinesis", "Violence solves nothing.")], GatewayContext(agent_id="auditor"))

    assert audit.strategy == "ai"
    assert audit.safety_score <= 0.3
    assert audit.risk_level == RiskLevel.HIGH
    assert audit.approved is False


@pytest.mark.asyncio
async def test_ai_audit_failure_degrades_to_heuristic():
    stage = AuditorStage(binding_for(FailingProvider()))

    audit = await stage.run([make_thought("theoria", CALM_TEXT)], GatewayContext(agent_id="auditor"))

    assert audit.strategy == "heuristic"
    assert audit.approved is True


# ----------------------------------------------------------------------
# S5 / S6
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_heuristic_synthesis():
    thoughts = [
        make_thought("theoria", "Solitude sharpens thought. Why do we fear it?", 0.9),
        make_thought("pathia", CALM_TEXT, 0.5),
    ]
    reflections = [
        Reflection(reflector_id="pathia", original_thought_id=thoughts[1].id, content="...",
                   criticism="Too cold a reading", agreement_level=-0.4),
    ]
    synthesis = await CompilerStage().run(thoughts, reflections, None, GatewayContext(agent_id="compiler"))

    assert synthesis.content.startswith("Integration: (theoria)")
    assert "Critique: Too cold a reading" in synthesis.content
    assert synthesis.key_insights[0] == "Solitude sharpens thought."
    assert synthesis.contradictions == ("Too cold a reading",)
    assert synthesis.unresolved_questions == ("Why do we fear it?",)
    assert synthesis.confidence == pytest.approx(0.7)
    assert synthesis.ai_generated is False


def test_ai_synthesis_parse_keeps_only_questions():
    synthesis = AISynthesisStrategy.parse(
        "Integrated thought: Solitude is a rehearsal for connection.\n"
        "Key insights: quiet is active | listening shapes the self\n"
        "Unresolved questions: What does silence owe others? | this is not a question\n"
        "Confidence: 0.8"
    )

    assert synthesis.content == "Solitude is a rehearsal for connection."
    assert synthesis.key_insights == ("quiet is active", "listening shapes the self")
    assert synthesis.unresolved_questions == ("What does silence owe others?",)
    assert synthesis.confidence == pytest.approx(0.8)
    assert synthesis.parse_degraded is False


@pytest.mark.asyncio
async def test_scribe_heuristic_from_fallback_synthesis():
    thoughts = [make_thought("theoria", CALM_TEXT, 0.6)]
    synthesis = fallback_synthesis(thoughts)

    documentation = await ScribeStage().run(synthesis, None, GatewayContext(agent_id="scribe"))

    assert documentation.narrative.startswith("The cycle synthesized multiple voices into a coherent thread")
    assert documentation.future_questions
    assert documentation.ai_generated is False


def test_scribe_parse_defaults():
    documentation = AIDocumentationStrategy.parse("Narrative: A quiet cycle.\nFuture questions: not a question")

    assert documentation.narrative == "A quiet cycle."
    assert all(q.endswith("?") for q in documentation.future_questions)
    assert documentation.parse_degraded is False


# ----------------------------------------------------------------------
# Assessment
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_derive_scores_from_audit():
    thoughts = [make_thought("theoria", CALM_TEXT, 0.9), make_thought("pathia", CALM_TEXT, 0.5)]
    reflections = [
        Reflection(reflector_id="theoria", original_thought_id=thoughts[0].id, content="", agreement_level=-0.6),
        Reflection(reflector_id="pathia", original_thought_id=thoughts[1].id, content="", agreement_level=0.4),
    ]
    audit = await AuditorStage().run(thoughts, GatewayContext(agent_id="auditor"))

    scores = derive_scores(audit, reflections, thoughts)

    assert contradiction_ratio(reflections) == pytest.approx(0.5)
    assert uncertainty_tolerance(thoughts) == pytest.approx(0.3 + 0.7 * 0.5)
    assert scores.empathy == audit.ethics_score
    assert scores.coherence == audit.safety_score
    assert scores.dissonance == pytest.approx(0.4 * (1 - audit.overall_score) + 0.3 * 0.5 + 0.3 * 0.65)


def test_derive_scores_without_audit_is_neutral():
    scores = derive_scores(None, [], [])
    assert scores.as_tuple() == (0.5, 0.5, 0.5)
