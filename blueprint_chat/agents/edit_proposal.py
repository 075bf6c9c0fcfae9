"""Edit-proposal agent.

Turns a natural-language change request into one field-level proposal for a
single blueprint section.  Nothing is written here: the proposal is returned
to the client, which applies it later through the confirm-edit endpoint.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.usage import RunUsage

from blueprint_chat.agents.history import recent_history
from blueprint_chat.core.field_paths import diff_preview, get_value_at_path, has_path
from blueprint_chat.core.model_registry import ModelRegistry, charge_failed_run
from blueprint_chat.core.resilience import bounded
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.chat import ChatMessage
from blueprint_chat.models.domain import EditIntent, EditProposal, EditResult
from blueprint_chat.services.exceptions import AgentFailedError, MalformedAgentOutputError

logger = logging.getLogger(__name__)

HISTORY_MESSAGES = 4

_INSTRUCTIONS = """\
You are an expert editor for Strategic Blueprint documents.
Your role is to interpret user edit requests and generate precise field-level changes.

RULES:
1. Identify the EXACT field to edit based on the user's request
2. field_path must use dot notation (e.g. "recommendedPositioning", "painPoints.primary[0]")
3. The new value MUST match the original data type exactly:
   - If original is a string, new value must be a string
   - If original is an array, new value must be an array
   - If original is a number, new value must be a number
   - If original is an object, new value must be an object with the same structure
4. Provide a clear explanation of WHY this change addresses the user's request
5. Be conservative - only change what the user asked for

AVAILABLE SECTIONS AND THEIR COMMON FIELDS:

industryMarketOverview:
- categorySnapshot (object with category, market, perspective)
- painPoints (object with primary[], secondary[])
- psychologicalDrivers (object with fears[], desires[], motivators[], objections[])
- recommendedPositioning (string)
- keyInsights (string[])

icpAnalysisValidation:
- icpViability (object with score, rationale, strengthFactors[], riskFactors[])
- targetingRecommendations (string[])

offerAnalysisViability:
- offerStrength (object with overallScore and sub-scores)
- offerRecommendations (string[])

competitorAnalysis:
- competitors (array of objects with name, strengths[], weaknesses[], positioning)
- competitiveGaps (string[])
- strategicRecommendations (string[])

crossAnalysisSynthesis:
- executiveSummary (string)
- strategicRecommendations (object with immediate[], shortTerm[], longTerm[])
- nextSteps (string[])
"""


class EditDraft(BaseModel):
    """Raw proposal as produced by the model."""

    field_path: str = Field(description="Dot-notation path to the field inside the section")
    old_value: Any = Field(None, description="Current value of the field")
    new_value: Any = Field(description="Proposed value, same type as the current value")
    explanation: str = Field(description="Why this change addresses the request")


def create_edit_agent(
    registry: ModelRegistry,
    model_name: str = "edit",
) -> Agent[None, EditDraft]:
    """Create an edit agent producing a structured :class:`EditDraft`."""
    return registry.create_agent(
        model_name,
        output_type=EditDraft,
        instructions=_INSTRUCTIONS,
    )


def build_edit_result(
    section_data: dict[str, Any], intent: EditIntent, draft: EditDraft
) -> EditResult:
    """Validate *draft* against *section_data* and build the proposal.

    The old value is read from the section itself; the model's own
    ``old_value`` is only used when the path does not resolve.

    Raises:
        MalformedAgentOutputError: If the draft has no field path or
            no explanation.
    """
    field_path = draft.field_path.strip()
    explanation = draft.explanation.strip()
    if not field_path:
        raise MalformedAgentOutputError("edit", "empty field path")
    if not explanation:
        raise MalformedAgentOutputError("edit", "empty explanation")

    if has_path(section_data, field_path):
        old_value = get_value_at_path(section_data, field_path)
    else:
        logger.warning(
            "Proposed path %r not found in %s, using model-reported old value",
            field_path,
            intent.section,
        )
        old_value = draft.old_value

    return EditResult(
        section=intent.section,
        field_path=field_path,
        old_value=old_value,
        new_value=draft.new_value,
        explanation=explanation,
        diff_preview=diff_preview(old_value, draft.new_value),
    )


@trace_span("edit_agent", stage="agent")
async def propose_edit(
    registry: ModelRegistry,
    section_data: dict[str, Any],
    intent: EditIntent,
    chat_history: Sequence[ChatMessage] | None = None,
    *,
    model_name: str = "edit",
    timeout: float | None = None,
) -> EditProposal:
    """Propose one field-level change to *section_data*.

    Raises:
        AgentFailedError: If the model call fails or times out.
        MalformedAgentOutputError: If the proposal is structurally unusable.
    """
    prompt = (
        f"## Current Section Data ({intent.section}):\n"
        f"```json\n{json.dumps(section_data, indent=2, ensure_ascii=False)}\n```\n\n"
        "## User's Edit Request:\n"
        f'Field hint: "{intent.field or ""}"\n'
        f'Desired change: "{intent.desired_change or ""}"\n\n'
        "Analyze the section data and generate the precise field-level edit "
        "to address this request."
    )

    run_usage = RunUsage()
    try:
        agent = create_edit_agent(registry, model_name)
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
        raise AgentFailedError("edit", e, usage=usage, cost=cost) from e

    usage, cost = registry.charge(model_name, result.usage())
    try:
        edit = build_edit_result(section_data, intent, result.output)
    except MalformedAgentOutputError as e:
        raise MalformedAgentOutputError(
            "edit", e.reason, usage=usage, cost=cost
        ) from e
    return EditProposal(result=edit, usage=usage, cost=cost)
