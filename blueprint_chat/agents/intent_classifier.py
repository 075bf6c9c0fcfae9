"""Intent classification agent.

Uses the *intent* model at temperature 0 to label a chat message with one
of the supported intent types.  The model fills a flat :class:`RawIntent`
record; :func:`parse_intent` turns it into the tagged union used for routing.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.usage import RunUsage

from blueprint_chat.core.model_registry import ModelRegistry, charge_failed_run
from blueprint_chat.core.resilience import bounded
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.domain import (
    BlueprintSection,
    ChatIntent,
    EditIntent,
    ExplainIntent,
    GeneralIntent,
    IntentClassification,
    QuestionIntent,
    RegenerateIntent,
    UnknownIntent,
)

logger = logging.getLogger(__name__)

_INSTRUCTIONS = """\
You are an intent classifier for a Strategic Blueprint document system.

The blueprint has 5 sections:
1. industryMarketOverview - Market landscape, pain points, psychological drivers, messaging opportunities
2. icpAnalysisValidation - ICP coherence check, viability, reachability, pain-solution fit, risk assessment
3. offerAnalysisViability - Offer strength scores (1-10), red flags, recommendations
4. competitorAnalysis - Competitor profiles, ad hooks, funnel patterns, gaps and opportunities
5. crossAnalysisSynthesis - Key insights, recommended positioning, messaging angles, platform recommendations, next steps

Classify the user's message into one of these intents:
- question: User wants information from the blueprint (what, who, how many, etc.)
- edit: User wants to change something in the blueprint (update, change, fix, modify)
- explain: User wants to understand WHY something is the way it is (why, reasoning, explain)
- regenerate: User wants to redo a section with new instructions (redo, regenerate, rewrite)
- general: Greetings, small talk, or unclear intent

Fill only the fields relevant to the chosen type:
- question: topic, sections (list of section names)
- general: topic
- edit: section, field (if known), desired_change
- explain: section, field (if known), what_to_explain
- regenerate: section, instructions
"""

# Used by edit/explain/regenerate when the model names no valid section.
DEFAULT_SECTION = BlueprintSection.CROSS_ANALYSIS_SYNTHESIS


class RawIntent(BaseModel):
    """Flat classifier output, validated into a :data:`ChatIntent` afterwards."""

    type: str = Field(description="question | edit | explain | regenerate | general")
    topic: str | None = None
    sections: list[str] = Field(default_factory=list)
    section: str | None = None
    field: str | None = None
    desired_change: str | None = None
    what_to_explain: str | None = None
    instructions: str | None = None


def create_intent_agent(
    registry: ModelRegistry,
    model_name: str = "intent",
) -> Agent[None, RawIntent]:
    """Create an intent-classification agent with the given model."""
    return registry.create_agent(
        model_name,
        output_type=RawIntent,
        instructions=_INSTRUCTIONS,
    )


def _section(value: str | None) -> BlueprintSection | None:
    try:
        return BlueprintSection(value) if value else None
    except ValueError:
        return None


def parse_intent(raw: RawIntent) -> ChatIntent:
    """Normalise the classifier's flat record into a tagged intent.

    Unknown section names fall back to :data:`DEFAULT_SECTION` for
    section-scoped intents and are dropped from ``question.sections``.
    An unrecognised ``type`` becomes :class:`UnknownIntent`.
    """
    match raw.type.strip().lower():
        case "question":
            sections = [s for s in map(_section, raw.sections) if s is not None]
            return QuestionIntent(topic=raw.topic or "unknown", sections=sections)
        case "general":
            return GeneralIntent(topic=raw.topic or "conversation")
        case "edit":
            return EditIntent(
                section=_section(raw.section) or DEFAULT_SECTION,
                field=raw.field or None,
                desired_change=raw.desired_change or None,
            )
        case "explain":
            return ExplainIntent(
                section=_section(raw.section) or DEFAULT_SECTION,
                field=raw.field or None,
                what_to_explain=raw.what_to_explain or None,
            )
        case "regenerate":
            return RegenerateIntent(
                section=_section(raw.section) or DEFAULT_SECTION,
                instructions=raw.instructions or None,
            )
        case _:
            return UnknownIntent()


@trace_span("classify_intent", stage="classification")
async def classify_intent(
    registry: ModelRegistry,
    message: str,
    *,
    model_name: str = "intent",
    timeout: float | None = None,
) -> IntentClassification:
    """Classify *message*.  Never raises.

    Any model, provider or output-validation failure yields an
    :class:`UnknownIntent`, charged with whatever the failed run consumed.
    """
    run_usage = RunUsage()
    try:
        agent = create_intent_agent(registry, model_name)
        result = await bounded(agent.run(message, usage=run_usage), timeout)
    except Exception:
        logger.exception("Intent classification failed, falling back to unknown")
        usage, cost = charge_failed_run(registry, model_name, run_usage)
        return IntentClassification(intent=UnknownIntent(), usage=usage, cost=cost)

    usage, cost = registry.charge(model_name, result.usage())
    intent = parse_intent(result.output)
    logger.info("Classified message as %s (cost=%.6f)", intent.type, cost)
    return IntentClassification(intent=intent, usage=usage, cost=cost)
