"""Model registry: thin wrapper around pydantic-ai Model creation.

Creates and holds pydantic-ai :class:`Model` instances keyed by purpose name
(``"intent"``, ``"qa"``, ``"edit"``, ``"explain"``).  Does **not** wrap
:class:`pydantic_ai.Agent`; callers create their own Agents with the
appropriate ``instructions`` and ``output_type``.

The registry also owns per-model pricing, so every agent wrapper turns a
pydantic-ai :class:`RunUsage` into the same ``(TokenUsage, cost)`` pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings
from pydantic_ai.usage import RunUsage

from blueprint_chat.config.models import LLMConfig, ModelConfig, ProviderConfig
from blueprint_chat.core.http_client_pool import HttpClientPool
from blueprint_chat.models.domain import TokenUsage


@dataclass(frozen=True)
class RegisteredModel:
    """A named model with its pydantic-ai ``Model`` instance and pricing."""

    name: str
    model: Model
    settings: ModelSettings
    config: ModelConfig


class ModelRegistry:
    """Manages named pydantic-ai ``Model`` objects built from config.

    Usage::

        registry = ModelRegistry(llm_config, provider_config, http_pool)

        agent = registry.create_agent("qa",
            instructions="Answer based on the blueprint...",
            output_type=str,
        )
        result = await agent.run(prompt)
        usage, cost = registry.charge("qa", result.usage())
    """

    def __init__(
        self,
        llm_config: LLMConfig,
        provider_config: ProviderConfig,
        http_pool: HttpClientPool,
    ) -> None:
        self._models: dict[str, RegisteredModel] = {}
        for name, model_cfg in llm_config.models.items():
            self._models[name] = self._create_model(
                name, model_cfg, provider_config, http_pool
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_model(self, name: str) -> RegisteredModel:
        """Return a registered model by purpose name.

        Raises:
            KeyError: If *name* is not found.
        """
        if name not in self._models:
            available = ", ".join(sorted(self._models))
            raise KeyError(f"Model '{name}' not found. Available: [{available}]")
        return self._models[name]

    def create_agent(self, model_name: str, **agent_kwargs: Any) -> Agent:
        """Create a :class:`pydantic_ai.Agent` pre-configured with a named model.

        All extra *agent_kwargs* (``instructions``, ``output_type``, etc.)
        are forwarded directly to the Agent constructor.
        """
        registered = self.get_model(model_name)
        return Agent(
            registered.model,
            model_settings=registered.settings,
            **agent_kwargs,
        )

    def charge(self, model_name: str, run_usage: RunUsage) -> tuple[TokenUsage, float]:
        """Convert a run's usage into token counts and a dollar cost."""
        usage = to_token_usage(run_usage)
        return usage, self.estimate_cost(model_name, usage)

    def estimate_cost(self, model_name: str, usage: TokenUsage) -> float:
        cfg = self.get_model(model_name).config
        return (
            usage.prompt_tokens * cfg.input_cost_per_million
            + usage.completion_tokens * cfg.output_cost_per_million
        ) / 1_000_000

    @property
    def available_models(self) -> list[str]:
        """List all available model names."""
        return sorted(self._models)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _create_model(
        name: str,
        cfg: ModelConfig,
        provider_config: ProviderConfig,
        http_pool: HttpClientPool,
    ) -> RegisteredModel:
        match cfg.provider:
            case "openrouter":
                model = _build_openrouter_model(cfg, provider_config, http_pool)
            case "openai":
                model = _build_openai_model(cfg, provider_config, http_pool)
            case "azure":
                model = _build_azure_model(cfg, provider_config, http_pool)
            case _:
                raise ValueError(
                    f"Unknown LLM provider '{cfg.provider}' for model '{name}'. "
                    "Supported: openrouter, openai, azure"
                )

        return RegisteredModel(
            name=name, model=model, settings=_build_settings(cfg), config=cfg
        )


def to_token_usage(run_usage: RunUsage) -> TokenUsage:
    """Map pydantic-ai usage onto the service's token counters."""
    return TokenUsage(
        prompt_tokens=run_usage.input_tokens,
        completion_tokens=run_usage.output_tokens,
        total_tokens=run_usage.total_tokens,
    )


def charge_failed_run(
    registry: ModelRegistry, model_name: str, run_usage: RunUsage
) -> tuple[TokenUsage, float]:
    """Price whatever a failed run consumed before it failed.

    *run_usage* is the accumulator passed to ``agent.run(usage=...)``; it
    keeps the requests that completed even when the run raises or times out.
    """
    if not run_usage.total_tokens:
        return TokenUsage(), 0.0
    return registry.charge(model_name, run_usage)


# -----------------------------------------------------------------------
# Provider-specific model builders
# -----------------------------------------------------------------------


def _build_openrouter_model(
    cfg: ModelConfig,
    provider_config: ProviderConfig,
    http_pool: HttpClientPool,
) -> Model:
    """Create an ``OpenAIChatModel`` routed through OpenRouter."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openrouter import OpenRouterProvider

    if not provider_config.openrouter_api_key:
        raise ValueError("OpenRouter model requested but no openRouterApiKey provided")

    provider = OpenRouterProvider(
        api_key=provider_config.openrouter_api_key,
        http_client=http_pool.get("openrouter"),
    )
    return OpenAIChatModel(cfg.model_name, provider=provider)


def _build_openai_model(
    cfg: ModelConfig,
    provider_config: ProviderConfig,
    http_pool: HttpClientPool,
) -> Model:
    """Create an ``OpenAIChatModel`` against an OpenAI-compatible endpoint."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    provider = OpenAIProvider(
        base_url=provider_config.openai_base_url,
        api_key=provider_config.openai_api_key,
        http_client=http_pool.get("openai"),
    )
    return OpenAIChatModel(cfg.model_name, provider=provider)


def _build_azure_model(
    cfg: ModelConfig,
    provider_config: ProviderConfig,
    http_pool: HttpClientPool,
) -> Model:
    """Create an ``OpenAIChatModel`` with ``AzureProvider``."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.azure import AzureProvider

    if not provider_config.azure_endpoint:
        raise ValueError("Azure LLM model requested but no azureEndpoint provided")

    provider = AzureProvider(
        azure_endpoint=provider_config.azure_endpoint,
        api_version=provider_config.azure_api_version,
        api_key=provider_config.azure_api_key,
        http_client=http_pool.get("azure"),
    )
    return OpenAIChatModel(cfg.model_name, provider=provider)


def _build_settings(cfg: ModelConfig) -> ModelSettings:
    base: dict[str, Any] = {"max_tokens": cfg.max_tokens}
    if cfg.temperature is not None:
        base["temperature"] = cfg.temperature
    return ModelSettings(**base)
