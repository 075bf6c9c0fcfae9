"""Pydantic models for the ``config.json`` service configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# LLM Config
# ---------------------------------------------------------------------------


class ModelConfig(BaseModel):
    """Configuration for a single LLM model."""

    provider: str  # "openrouter", "openai", "azure"
    model_name: str = Field(alias="modelName")
    temperature: float | None = None
    max_tokens: int = Field(1024, alias="maxTokens")
    # Dollar prices used to turn token usage into turn cost
    input_cost_per_million: float = Field(3.0, alias="inputCostPerMillion", ge=0.0)
    output_cost_per_million: float = Field(
        15.0, alias="outputCostPerMillion", ge=0.0
    )

    model_config = {"populate_by_name": True}


class LLMConfig(BaseModel):
    """Named map of model configurations.

    Keys are purpose names: ``"intent"``, ``"qa"``, ``"edit"``, ``"explain"``.
    """

    models: dict[str, ModelConfig]

    model_config = {"populate_by_name": True}


class ProviderConfig(BaseModel):
    """Credentials for OpenAI-compatible LLM / embedding endpoints."""

    openrouter_api_key: str | None = Field(None, alias="openRouterApiKey")
    openrouter_base_url: str = Field(
        "https://openrouter.ai/api/v1", alias="openRouterBaseUrl"
    )
    openai_api_key: str | None = Field(None, alias="openAIApiKey")
    openai_base_url: str = Field("https://api.openai.com/v1", alias="openAIBaseUrl")
    azure_endpoint: str | None = Field(None, alias="azureEndpoint")
    azure_api_key: str | None = Field(None, alias="azureApiKey")
    azure_api_version: str | None = Field(None, alias="azureApiVersion")

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Retrieval / Store Config
# ---------------------------------------------------------------------------


class RetrievalConfig(BaseModel):
    """Chunk retrieval configuration.

    ``matchThreshold`` was tuned down from 0.7: answers are better with some
    grounding context than with none.
    """

    provider: str = "local"  # "supabase", "local"
    match_count: int = Field(5, alias="matchCount", ge=1)
    match_threshold: float = Field(0.65, alias="matchThreshold", ge=0.0, le=1.0)
    embedding_provider: str = Field("openrouter", alias="embeddingProvider")
    embedding_model: str = Field(
        "openai/text-embedding-3-small", alias="embeddingModel"
    )
    embedding_cost_per_million: float = Field(
        0.02, alias="embeddingCostPerMillion", ge=0.0
    )
    rpc_name: str = Field("match_blueprint_chunks", alias="rpcName")

    model_config = {"populate_by_name": True}


class StoreConfig(BaseModel):
    """Blueprint document store configuration."""

    provider: str = "file"  # "supabase", "file"
    url: str | None = None
    key: str | None = None
    table: str = "blueprints"
    output_column: str = Field("output", alias="outputColumn")
    apply_edit_rpc: str = Field("apply_blueprint_edit", alias="applyEditRpc")
    directory: str = "blueprints"

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Runtime Config
# ---------------------------------------------------------------------------


class ResilienceConfig(BaseModel):
    """Bounds for external calls.

    ``callTimeoutSeconds = null`` keeps the unbounded wait.
    """

    call_timeout_seconds: float | None = Field(
        None, alias="callTimeoutSeconds", gt=0.0
    )
    retry_attempts: int = Field(3, alias="retryAttempts", ge=1)

    model_config = {"populate_by_name": True}


class ServerConfig(BaseModel):
    """HTTP server behaviour."""

    request_timeout_seconds: float = Field(120.0, alias="requestTimeoutSeconds", gt=0)
    service_name: str = Field("blueprint-chat", alias="serviceName")

    model_config = {"populate_by_name": True}


class ChatServiceConfig(BaseModel):
    """Complete configuration for the blueprint chat service."""

    llm_config: LLMConfig = Field(alias="llmConfig")
    provider_config: ProviderConfig = Field(
        default_factory=ProviderConfig, alias="providerConfig"
    )
    retrieval_config: RetrievalConfig = Field(
        default_factory=RetrievalConfig, alias="retrievalConfig"
    )
    store_config: StoreConfig = Field(default_factory=StoreConfig, alias="storeConfig")
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = {"populate_by_name": True}
