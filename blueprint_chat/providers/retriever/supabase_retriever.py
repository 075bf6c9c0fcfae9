"""pgvector retrieval through the ``match_blueprint_chunks`` Supabase RPC."""

from __future__ import annotations

import logging
from typing import Any

from postgrest.exceptions import APIError

from blueprint_chat.config.models import ResilienceConfig, RetrievalConfig
from blueprint_chat.core.resilience import bounded, safe_execute
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.domain import RetrievalResult, RetrievedChunk
from blueprint_chat.providers.base import BaseRetrieverProvider, select_chunks
from blueprint_chat.providers.embeddings import EmbeddingClient
from blueprint_chat.providers.factory import register_provider
from blueprint_chat.providers.store.supabase_store import SupabaseClientHolder
from blueprint_chat.services.exceptions import RetrievalError

logger = logging.getLogger(__name__)


@register_provider("retriever", "supabase")
class SupabaseChunkRetriever(BaseRetrieverProvider):
    """Embeds the query, then runs a similarity search over stored chunks.

    The embedding is a paid call and runs exactly once per retrieval; only
    the search RPC is retried.  A failed search raises
    :class:`RetrievalError` carrying the embedding cost already spent.
    """

    name = "supabase"

    def __init__(
        self,
        config: RetrievalConfig,
        embedder: EmbeddingClient,
        client_holder: SupabaseClientHolder,
        resilience: ResilienceConfig | None = None,
        **_: Any,
    ) -> None:
        self.config = config
        self.embedder = embedder
        self.clients = client_holder
        self.resilience = resilience or ResilienceConfig()

    @trace_span("retrieve", stage="retrieval")
    async def retrieve(
        self,
        document_id: str,
        query: str,
        match_count: int = 5,
        match_threshold: float = 0.65,
        section_filter: str | None = None,
    ) -> RetrievalResult:
        embedding = await bounded(
            self.embedder.embed(query), self.resilience.call_timeout_seconds
        )

        try:
            rows = await safe_execute(
                self._match,
                embedding.vector,
                document_id,
                match_count,
                match_threshold,
                section_filter,
                attempts=self.resilience.retry_attempts,
                timeout=self.resilience.call_timeout_seconds,
            )
        except APIError as exc:
            raise RetrievalError(
                f"Retrieval failed: {exc.message}", cost=embedding.cost
            ) from exc
        except Exception as exc:
            raise RetrievalError(
                f"Retrieval failed: {exc}", cost=embedding.cost
            ) from exc

        chunks = [_row_to_chunk(row) for row in rows]
        selected = select_chunks(chunks, match_count, match_threshold)
        logger.debug(
            "Retrieved %d/%d chunks for %s", len(selected), len(chunks), document_id
        )
        return RetrievalResult(chunks=selected, embedding_cost=embedding.cost)

    async def _match(
        self,
        vector: list[float],
        document_id: str,
        match_count: int,
        match_threshold: float,
        section_filter: str | None,
    ) -> list[dict[str, Any]]:
        client = await self.clients.get()
        response = await client.rpc(
            self.config.rpc_name,
            {
                "query_embedding": vector,
                "p_blueprint_id": document_id,
                "match_threshold": match_threshold,
                "match_count": match_count,
                "section_filter": section_filter,
            },
        ).execute()
        return response.data or []


def _row_to_chunk(row: dict[str, Any]) -> RetrievedChunk:
    similarity = float(row.get("similarity") or 0.0)
    return RetrievedChunk(
        id=str(row["id"]),
        section=row.get("section", ""),
        field_path=row.get("field_path", ""),
        content=row.get("content", ""),
        similarity=min(max(similarity, 0.0), 1.0),
        metadata=row.get("metadata") or {},
    )
