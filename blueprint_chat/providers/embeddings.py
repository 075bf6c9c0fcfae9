"""Query embedding through an OpenAI-compatible ``/embeddings`` endpoint."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from blueprint_chat.config.models import ProviderConfig, RetrievalConfig
from blueprint_chat.core.http_client_pool import HttpClientPool
from blueprint_chat.services.exceptions import RetrievalError


@dataclass(frozen=True)
class Embedding:
    vector: list[float]
    prompt_tokens: int
    cost: float


class EmbeddingClient:
    """Embeds query strings and prices each call."""

    def __init__(
        self,
        retrieval_config: RetrievalConfig,
        provider_config: ProviderConfig,
        http_pool: HttpClientPool,
    ) -> None:
        self.model = retrieval_config.embedding_model
        self.cost_per_million = retrieval_config.embedding_cost_per_million

        match retrieval_config.embedding_provider:
            case "openrouter":
                base_url = provider_config.openrouter_base_url
                api_key = provider_config.openrouter_api_key
            case "openai":
                base_url = provider_config.openai_base_url
                api_key = provider_config.openai_api_key
            case other:
                raise ValueError(
                    f"Unknown embedding provider '{other}'. Supported: openrouter, openai"
                )
        if not api_key:
            raise ValueError(
                f"Embedding provider '{retrieval_config.embedding_provider}' has no API key"
            )

        self._client = http_pool.get(
            f"embeddings:{retrieval_config.embedding_provider}",
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def embed(self, text: str) -> Embedding:
        """Return the embedding of *text*.

        Raises:
            RetrievalError: On a non-2xx response or a malformed body.
        """
        response = await self._client.post(
            "/embeddings", json={"model": self.model, "input": text}
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RetrievalError(
                f"Embedding request failed with {exc.response.status_code}"
            ) from exc

        body = response.json()
        try:
            vector = body["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RetrievalError("Embedding response has no data") from exc

        usage = body.get("usage") or {}
        # Roughly four characters per token when the provider omits usage
        prompt_tokens = int(usage.get("prompt_tokens") or max(1, len(text) // 4))
        return Embedding(
            vector=vector,
            prompt_tokens=prompt_tokens,
            cost=prompt_tokens * self.cost_per_million / 1_000_000,
        )
