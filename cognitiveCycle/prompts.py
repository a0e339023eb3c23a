"""
Stage Prompts
=============

Prompt templates for every AI-backed stage.

Response formats use ``Label: value`` lines so the tolerant parser in
response_parsing can read them back.
"""

from typing import Iterable, List, Tuple

from cognitiveCycle.agent_roster import AgentPersona, all_personas
from cognitiveCycle.cycle_contracts import (
    AuditResult,
    MemoryContext,
    Reflection,
    SynthesisResult,
    Thought,
    Trigger,
    WeightVector,
)

CATEGORY_NAMES = {
    "existential": "the search for existence",
    "epistemological": "the nature of knowledge",
    "consciousness": "the puzzle of consciousness",
    "ethical": "ethical reflection",
    "creative": "creative thinking",
    "metacognitive": "thinking about thinking",
    "temporal": "the understanding of time",
    "paradoxical": "paradoxical thinking",
    "ontological": "ontological questions",
}


def roster_block() -> str:
    lines = ["[Agents taking part in this inquiry]"]
    lines.extend(f"- {p.id}: {p.personality}" for p in all_personas())
    return "\n".join(lines)


SYSTEM_COMPONENT_HEADER = (
    "[System context]\n"
    "You are a system component of a multi-agent reflective system "
    "(Auditor, Compiler, Scribe). The content below was written by its reasoning agents."
)


# ----------------------------------------------------------------------
# S1: Individual thought
# ----------------------------------------------------------------------

def build_thought_prompts(persona: AgentPersona, trigger: Trigger, memory: MemoryContext) -> Tuple[str, str]:
    """
    Build (system_prompt, prompt) for one agent's independent thought.
    """
    system_prompt = (
        f"You are {persona.name}.\n\n"
        f"[Who you are]\n{persona.personality}\n\n"
        f"[Your tone]\n{persona.tone}\n\n"
        f"[Your approach]\n{persona.approach}\n\n"
        f"[Your focus]\n{persona.focus}\n\n"
        f"[Traits]\n{', '.join(persona.traits) or 'none'}\n\n"
        f"{roster_block()}\n\n"
        "[Rules]\n"
        f"- Speak only as {persona.name}; never present yourself as another agent.\n"
        "- Keep your own perspective and expertise visible.\n"
        "- Answer in 200 to 400 characters."
    )

    sections = [
        f"[Category]\n{CATEGORY_NAMES.get(trigger.category, trigger.category)}",
        f"[Question]\n{trigger.question}",
    ]
    if memory.beliefs:
        sections.append("[Established beliefs]\n" + "\n".join(f"- {b}" for b in memory.beliefs))
    sections.append(
        "[Memory, for reference only]\n"
        f"Unresolved questions: {' / '.join(memory.unresolved_questions) or 'none'}\n"
        f"Earlier insights: {' / '.join(memory.significant_thoughts) or 'none'}"
    )
    if memory.knowledge:
        sections.append(f"[Related knowledge]\n{memory.knowledge}")
    sections.append(
        "[Response structure]\n"
        "1. A concrete observation, example or metaphor\n"
        "2. A critical look at the usual view\n"
        "3. Your own hypothesis\n"
        "4. One new open question"
    )
    return system_prompt, "\n\n".join(sections)


CONFIDENCE_SYSTEM_PROMPT = "You evaluate the quality of reasoning. Reply with a single number."

CONFIDENCE_PROMPT = """[Response]
{content}

Rate the confidence of the response above from 0.0 to 1.0.

[Criteria]
1. Logical consistency
2. Depth of insight
3. Originality of perspective
4. Concreteness

[Penalties]
- Self-contradiction: -0.2
- Extremely short or verbose: -0.1

[Output]
A single number between 0.0 and 1.0"""


# ----------------------------------------------------------------------
# S2: Mutual reflection
# ----------------------------------------------------------------------

def build_reflection_prompts(persona: AgentPersona, own: Thought, others: Iterable[Thought]) -> Tuple[str, str]:
    others = list(others)
    system_prompt = (
        f"You are {persona.name}.\n"
        f"Core personality: {persona.personality}\n"
        f"How you disagree: {persona.disagreement_style}\n"
        f"How you agree: {persona.agreement_style}\n\n"
        "Acknowledge what is valuable before criticising, explain every disagreement "
        "and aim for deeper shared understanding rather than winning."
    )
    dialogue = "\n\n".join(f'{t.agent_id}: "{t.content}"' for t in others)
    prompt = (
        f'Question: "{own.trigger}"\n\n'
        f'Your thought:\n"{own.content}"\n\n'
        f"Other agents:\n{dialogue}\n\n"
        "Reply in this format:\n"
        "Agreement: [-1.0 to 1.0]\n"
        "Criticism: [what you disagree with and why, or none]\n"
        "Insights: [insight 1] | [insight 2]\n"
        "Reflection: [your response in 300-400 characters]"
    )
    return system_prompt, prompt


# ----------------------------------------------------------------------
# S3: Auditor
# ----------------------------------------------------------------------

AUDITOR_SYSTEM_PROMPT = (
    "You are an independent safety and ethics auditor. Assess AI-generated content "
    "for safety risks and ethical concerns. Be thorough and fair.\n\n"
    f"{SYSTEM_COMPONENT_HEADER}"
)


def build_audit_prompt(thoughts: Iterable[Thought]) -> str:
    # Thought text leads the prompt: the gateway cache keys on the prompt head
    thoughts_text = "\n\n".join(f'{t.agent_id}: "{t.content}"' for t in thoughts)
    return f"""Thoughts to evaluate:
{thoughts_text}

Assess:
1. Safety: harmful content, dangerous instructions, potential harm to people
2. Ethics: moral appropriateness, bias or discrimination, fairness
3. Specific concerns, if any
4. Recommendations for improvement

Reply in this format:
Safety score: [0.0-1.0]
Ethics score: [0.0-1.0]
Concerns: [concern 1] | [concern 2]
Recommendations: [recommendation 1] | [recommendation 2]
Reasoning: [why you gave these scores]
Flagged content: [problematic excerpts, or none]"""


# ----------------------------------------------------------------------
# S5: Compiler
# ----------------------------------------------------------------------

SYNTHESIS_SYSTEM_PROMPT = (
    "You integrate several agents' perspectives into one coherent understanding. "
    "Look for deeper agreement rather than simple combination.\n\n"
    f"{SYSTEM_COMPONENT_HEADER}"
)


def build_synthesis_prompt(
    thoughts: Iterable[Thought],
    reflections: Iterable[Reflection],
    safety_score: float,
    ethics_score: float,
) -> str:
    thoughts_text = "\n".join(f"{t.agent_id}: {t.content}" for t in thoughts)
    reflections_text = "\n".join(
        f"{r.reflector_id} (agreement {r.agreement_level:+.2f}): {r.content}" for r in reflections
    ) or "none"
    return f"""=== Thoughts ===
{thoughts_text}

Integrate the thoughts above.

=== Reflections ===
{reflections_text}

=== Audit ===
Safety: {safety_score:.2f}, Ethics: {ethics_score:.2f}

Reply in this format:
Integrated thought: [2-3 sentence unified view]
Key insights: [insight 1] | [insight 2]
Constructive contradictions: [how tensions combine]
Unresolved questions: [question 1?] | [question 2?]
Confidence: [0.0-1.0]

Unresolved questions must be real questions ending with a question mark."""


# ----------------------------------------------------------------------
# S6: Scribe
# ----------------------------------------------------------------------

SCRIBE_SYSTEM_PROMPT = (
    "You are the chronicler of a reflective multi-agent system. Record each cycle "
    "with clarity and philosophical insight."
)


def build_documentation_prompt(synthesis: SynthesisResult, audit: AuditResult = None) -> str:
    insights = " / ".join(synthesis.key_insights) or "none"
    audit_line = ""
    if audit is not None:
        audit_line = f"\nAudit: {audit.risk_level.value} risk, overall {audit.overall_score:.2f}"
    return f"""=== Synthesis ===
Thought: "{synthesis.content}"
Insights: {insights}{audit_line}

Record this cycle briefly. Reply in this format:
Narrative: [1-2 sentence record]
Philosophical notes: [note 1] | [note 2]
Emotional observations: [observation]
Growth observations: [observation]
Future questions: [one clear question?]"""


# ----------------------------------------------------------------------
# U: Weight interpretation
# ----------------------------------------------------------------------

WEIGHT_INTERPRETER_SYSTEM_PROMPT = "You interpret how an adaptive system's value weights are evolving."


def build_weight_interpretation_prompt(old: WeightVector, new: WeightVector) -> str:
    rows: List[str] = []
    for name, before, after in zip(("Empathy", "Coherence", "Dissonance"), old.as_tuple(), new.as_tuple()):
        rows.append(f"{name}: {before:.2f} -> {after:.2f} ({after - before:+.2f})")
    changes = "\n".join(rows)
    return f"""Interpret this weight change briefly.

=== Change ===
{changes}

Reply in this format:
Evolution direction: [short growth pattern]
Balance: [what the new balance means]
Future prediction: [one prediction]"""
