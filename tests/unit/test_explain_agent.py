"""Unit tests for the explanation agent."""

import pytest

from blueprint_chat.agents.explain import ExplainDraft, explain
from blueprint_chat.models.domain import BlueprintSection, ExplainIntent, RelatedFactor
from blueprint_chat.services.exceptions import AgentFailedError


@pytest.fixture
def intent():
    return ExplainIntent(
        section=BlueprintSection.CROSS_ANALYSIS_SYNTHESIS,
        what_to_explain="why LinkedIn is the first channel",
    )


@pytest.mark.asyncio
async def test_explain_fills_defaults(mock_registry, agents, make_result, blueprint, intent):
    agents["explain"].run.return_value = make_result(
        ExplainDraft(explanation="Because VP Sales are reachable on LinkedIn.")
    )

    result = await explain(mock_registry, blueprint, intent)

    assert result.explanation == "Because VP Sales are reachable on LinkedIn."
    assert result.related_factors == []
    assert result.confidence == "medium"
    assert result.cost == pytest.approx(120e-6)


@pytest.mark.asyncio
async def test_explain_keeps_model_factors(mock_registry, agents, make_result, blueprint, intent):
    factor = RelatedFactor(
        section="icpAnalysisValidation",
        factor="VP Sales feel the pain",
        relevance="Defines who the campaign targets",
    )
    agents["explain"].run.return_value = make_result(
        ExplainDraft(explanation="...", related_factors=[factor], confidence="high")
    )

    result = await explain(mock_registry, blueprint, intent)

    assert result.related_factors == [factor]
    assert result.confidence == "high"
    prompt = agents["explain"].run.call_args.args[0]
    assert "why LinkedIn is the first channel" in prompt
    assert "Outforecast the incumbents" in prompt


@pytest.mark.asyncio
async def test_explain_wraps_failures(mock_registry, agents, blueprint, intent):
    agents["explain"].run.side_effect = RuntimeError("boom")

    with pytest.raises(AgentFailedError) as exc_info:
        await explain(mock_registry, blueprint, intent)

    assert exc_info.value.agent == "explain"
