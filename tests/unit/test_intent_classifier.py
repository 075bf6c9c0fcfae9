"""Unit tests for the intent classification agent."""

from unittest.mock import ANY

import pytest
from pydantic_ai.exceptions import UnexpectedModelBehavior

from blueprint_chat.agents.intent_classifier import RawIntent, classify_intent, parse_intent
from blueprint_chat.models.domain import (
    BlueprintSection,
    EditIntent,
    ExplainIntent,
    GeneralIntent,
    QuestionIntent,
    RegenerateIntent,
    UnknownIntent,
)


def test_parse_question_drops_invalid_sections():
    intent = parse_intent(
        RawIntent(
            type="question",
            topic="audience",
            sections=["icpAnalysisValidation", "notASection"],
        )
    )

    assert isinstance(intent, QuestionIntent)
    assert intent.topic == "audience"
    assert intent.sections == [BlueprintSection.ICP_ANALYSIS_VALIDATION]


def test_parse_question_defaults_topic():
    intent = parse_intent(RawIntent(type="question"))
    assert intent.topic == "unknown"
    assert intent.sections == []


def test_parse_general_defaults_topic():
    intent = parse_intent(RawIntent(type="general"))
    assert isinstance(intent, GeneralIntent)
    assert intent.topic == "conversation"


def test_parse_edit_keeps_valid_section():
    intent = parse_intent(
        RawIntent(
            type="edit",
            section="competitorAnalysis",
            field="headline",
            desired_change="Grow Faster",
        )
    )

    assert isinstance(intent, EditIntent)
    assert intent.section == BlueprintSection.COMPETITOR_ANALYSIS
    assert intent.field == "headline"
    assert intent.desired_change == "Grow Faster"


@pytest.mark.parametrize("section", [None, "", "marketing"])
def test_parse_section_scoped_intents_fall_back_to_synthesis(section):
    edit = parse_intent(RawIntent(type="edit", section=section))
    explain = parse_intent(RawIntent(type="explain", section=section))
    regenerate = parse_intent(RawIntent(type="regenerate", section=section))

    assert isinstance(edit, EditIntent)
    assert isinstance(explain, ExplainIntent)
    assert isinstance(regenerate, RegenerateIntent)
    for intent in (edit, explain, regenerate):
        assert intent.section == BlueprintSection.CROSS_ANALYSIS_SYNTHESIS


def test_parse_blank_optional_fields_become_none():
    intent = parse_intent(
        RawIntent(type="explain", section="offerAnalysisViability", field="", what_to_explain="")
    )
    assert intent.field is None
    assert intent.what_to_explain is None


def test_parse_unrecognised_type_is_unknown():
    assert isinstance(parse_intent(RawIntent(type="summarize")), UnknownIntent)


def test_parse_type_is_case_insensitive():
    assert isinstance(parse_intent(RawIntent(type=" Question ")), QuestionIntent)


@pytest.mark.asyncio
async def test_classify_intent_charges_usage(mock_registry, agents, make_result):
    agents["intent"].run.return_value = make_result(
        RawIntent(type="question", topic="audience"), input_tokens=200, output_tokens=30
    )

    result = await classify_intent(mock_registry, "What's our target audience?")

    assert isinstance(result.intent, QuestionIntent)
    assert result.usage.total_tokens == 230
    assert result.cost == pytest.approx(230e-6)
    agents["intent"].run.assert_awaited_once_with(
        "What's our target audience?", usage=ANY
    )
    mock_registry.charge.assert_called_once()


@pytest.mark.asyncio
async def test_classify_intent_never_raises(mock_registry, agents):
    agents["intent"].run.side_effect = RuntimeError("provider down")

    result = await classify_intent(mock_registry, "hello")

    assert isinstance(result.intent, UnknownIntent)
    assert result.cost == 0.0
    assert result.usage.total_tokens == 0
    mock_registry.charge.assert_not_called()


@pytest.mark.asyncio
async def test_classify_intent_charges_tokens_spent_before_failure(
    mock_registry, agents, fail_after_billing
):
    agents["intent"].run.side_effect = fail_after_billing(
        UnexpectedModelBehavior("Exceeded maximum retries for output validation"),
        input_tokens=300,
        output_tokens=60,
    )

    result = await classify_intent(mock_registry, "hello")

    assert isinstance(result.intent, UnknownIntent)
    assert result.usage.total_tokens == 360
    assert result.cost == pytest.approx(360e-6)


@pytest.mark.asyncio
async def test_classify_intent_unknown_model_is_unknown_intent(mock_registry):
    mock_registry.create_agent.side_effect = KeyError("Model 'intent' not found")

    result = await classify_intent(mock_registry, "hello")

    assert isinstance(result.intent, UnknownIntent)
