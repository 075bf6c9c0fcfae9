"""Explanation agent.

Explains *why* a recommendation, score or assessment appears in the
blueprint, citing factors from other sections.  Needs the whole document.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.usage import RunUsage

from blueprint_chat.agents.history import recent_history
from blueprint_chat.core.model_registry import ModelRegistry, charge_failed_run
from blueprint_chat.core.resilience import bounded
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.chat import ChatMessage
from blueprint_chat.models.domain import (
    ConfidenceLevel,
    ExplainIntent,
    ExplainResult,
    RelatedFactor,
)
from blueprint_chat.services.exceptions import AgentFailedError

HISTORY_MESSAGES = 4

_INSTRUCTIONS = """\
You are an expert explainer for Strategic Blueprint documents.
Your role is to explain WHY certain recommendations, scores, or assessments were made.

BLUEPRINT SECTIONS:
1. industryMarketOverview - Market landscape, pain points, psychological drivers, messaging opportunities
2. icpAnalysisValidation - ICP coherence, viability, reachability, pain-solution fit, risk assessment
3. offerAnalysisViability - Offer strength scores (1-10), red flags, recommendations
4. competitorAnalysis - Competitor profiles, ad hooks, funnel patterns, gaps and opportunities
5. crossAnalysisSynthesis - Key insights, recommended positioning, messaging angles, platform recommendations

EXPLANATION APPROACH:
1. Directly answer the "why" question with clear reasoning
2. Reference specific data points from the blueprint as evidence
3. Show how factors from different sections connect and influence each other
4. Be conversational and educational, not just a data dump
5. Identify related factors from other sections that contributed to the recommendation

CROSS-SECTION CONNECTIONS (examples):
- Industry pain points -> ICP pain-solution fit -> Messaging angles
- Competitor weaknesses -> Competitive gaps -> Positioning recommendations
- Psychological drivers -> Messaging opportunities -> Primary messaging angles
- Offer strength scores -> Risk assessment -> Strategic recommendations

CONFIDENCE LEVELS:
- high: Multiple data points support the explanation, clear cross-section connections
- medium: Some supporting data, but connections are inferred
- low: Limited data available, explanation is based on general principles
"""


class ExplainDraft(BaseModel):
    explanation: str
    related_factors: list[RelatedFactor] | None = None
    confidence: ConfidenceLevel | None = None


def create_explain_agent(
    registry: ModelRegistry,
    model_name: str = "explain",
) -> Agent[None, ExplainDraft]:
    return registry.create_agent(
        model_name,
        output_type=ExplainDraft,
        instructions=_INSTRUCTIONS,
    )


@trace_span("explain_agent", stage="agent")
async def explain(
    registry: ModelRegistry,
    blueprint: dict[str, Any],
    intent: ExplainIntent,
    chat_history: Sequence[ChatMessage] | None = None,
    *,
    model_name: str = "explain",
    timeout: float | None = None,
) -> ExplainResult:
    """Explain the reasoning behind part of *blueprint*.

    Missing related factors become ``[]`` and a missing confidence becomes
    ``medium``.

    Raises:
        AgentFailedError: If the model call fails or times out.
    """
    prompt = (
        "## Full Blueprint Data:\n"
        f"```json\n{json.dumps(blueprint, indent=2, ensure_ascii=False)}\n```\n\n"
        "## User's Question:\n"
        f"Section: {intent.section}\n"
        f"Field: {intent.field or ''}\n"
        f'What to explain: "{intent.what_to_explain or ""}"\n\n'
        "Explain WHY this recommendation/assessment was made. Draw connections "
        "between sections and cite specific data as evidence."
    )

    run_usage = RunUsage()
    try:
        agent = create_explain_agent(registry, model_name)
        result = await bounded(
            agent.run(
                prompt,
                message_history=recent_history(chat_history, HISTORY_MESSAGES),
                usage=run_usage,
            ),
            timeout,
        )
    except Exception as e:
        usage, cost = charge_failed_run(registry, model_name, run_usage)
        raise AgentFailedError("explain", e, usage=usage, cost=cost) from e

    usage, cost = registry.charge(model_name, result.usage())
    draft: ExplainDraft = result.output
    return ExplainResult(
        explanation=draft.explanation,
        confidence=draft.confidence or "medium",
        related_factors=draft.related_factors or [],
        usage=usage,
        cost=cost,
    )
