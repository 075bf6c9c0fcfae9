"""Pytest configuration and fixtures."""

import copy
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic_ai.usage import RunUsage

from blueprint_chat.core.model_registry import ModelRegistry, to_token_usage
from blueprint_chat.providers.base import BaseBlueprintStore, BaseRetrieverProvider

# Flat price used by the mock registry: $1 per million tokens.
PRICE_PER_TOKEN = 1e-6

SAMPLE_BLUEPRINT = {
    "industryMarketOverview": {
        "painPoints": {
            "primary": [
                "Forecasts drift from CRM data",
                "No pipeline visibility until quarter end",
            ],
            "secondary": ["Manual data entry"],
        },
        "recommendedPositioning": "The forecasting copilot for mid-market teams",
        "sources": [{"url": "https://example.com/report"}],
    },
    "icpAnalysisValidation": {
        "icpViability": {"score": 8, "rationale": "VP Sales feel the pain"},
        "targetingRecommendations": ["Target VP Sales at Series A to C SaaS"],
    },
    "competitorAnalysis": {
        "headline": "Outforecast the incumbents",
        "competitors": [{"name": "Clari", "weaknesses": ["Enterprise pricing"]}],
    },
    "crossAnalysisSynthesis": {
        "executiveSummary": "Mid-market teams need accurate forecasts.",
        "nextSteps": ["Launch LinkedIn campaign"],
    },
}


def _mock_agent():
    agent = MagicMock()
    agent.run = AsyncMock()
    return agent


@pytest.fixture
def agents():
    """One mock pydantic-ai agent per model purpose."""
    return {name: _mock_agent() for name in ("intent", "qa", "edit", "explain")}


@pytest.fixture
def mock_registry(agents):
    """Mock ModelRegistry handing out the per-purpose mock agents."""
    registry = MagicMock(spec=ModelRegistry)
    registry.create_agent.side_effect = lambda model_name, **kwargs: agents[model_name]
    registry.charge.side_effect = lambda model_name, run_usage: (
        to_token_usage(run_usage),
        run_usage.total_tokens * PRICE_PER_TOKEN,
    )
    return registry


@pytest.fixture
def make_result():
    """Factory for ``AgentRunResult``-like mocks."""

    def _make(output, input_tokens=100, output_tokens=20):
        result = MagicMock()
        result.output = output
        result.usage.return_value = RunUsage(
            input_tokens=input_tokens, output_tokens=output_tokens
        )
        return result

    return _make


@pytest.fixture
def fail_after_billing():
    """Side effect for ``agent.run`` that consumes tokens, then raises *error*.

    Mirrors pydantic-ai adding each completed request to the ``usage``
    accumulator before the run fails.
    """

    def _make(error, input_tokens=100, output_tokens=20):
        async def run(*args, usage, **kwargs):
            usage.input_tokens += input_tokens
            usage.output_tokens += output_tokens
            raise error

        return run

    return _make


@pytest.fixture
def mock_retriever():
    """Mock Retriever Provider."""
    retriever = AsyncMock(spec=BaseRetrieverProvider)
    retriever.name = "mock"
    return retriever


@pytest.fixture
def mock_store():
    """Mock blueprint store."""
    store = AsyncMock(spec=BaseBlueprintStore)
    store.name = "mock"
    return store


@pytest.fixture
def blueprint():
    return copy.deepcopy(SAMPLE_BLUEPRINT)
