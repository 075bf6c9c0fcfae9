"""Unit tests for the embedding client and the Supabase-backed providers."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from blueprint_chat.config.models import ProviderConfig, RetrievalConfig, StoreConfig
from blueprint_chat.core.http_client_pool import HttpClientPool
from blueprint_chat.providers.embeddings import Embedding, EmbeddingClient
from blueprint_chat.providers.retriever.supabase_retriever import SupabaseChunkRetriever
from blueprint_chat.providers.store.supabase_store import (
    SupabaseBlueprintStore,
    SupabaseClientHolder,
)
from blueprint_chat.services.exceptions import (
    BlueprintNotFoundError,
    RetrievalError,
    StoreError,
)


def embedding_client(handler, cost_per_million=0.02):
    pool = HttpClientPool()
    pool._clients["embeddings:openrouter"] = httpx.AsyncClient(
        base_url="https://openrouter.test/api/v1", transport=httpx.MockTransport(handler)
    )
    return EmbeddingClient(
        RetrievalConfig(embedding_cost_per_million=cost_per_million),
        ProviderConfig(openrouter_api_key="sk-test"),
        pool,
    )


def mock_supabase(execute_result=None, execute_error=None):
    """Supabase client whose query builders end in an awaitable ``execute``."""
    client = MagicMock()
    execute = AsyncMock(return_value=execute_result, side_effect=execute_error)
    client.rpc.return_value.execute = execute
    query = client.table.return_value.select.return_value.eq.return_value
    query.maybe_single.return_value.execute = execute
    holder = AsyncMock(spec=SupabaseClientHolder)
    holder.get.return_value = client
    return client, holder


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_prices_reported_tokens():
    def handler(request):
        assert request.url.path == "/api/v1/embeddings"
        assert json.loads(request.content)["input"] == "target audience"
        return httpx.Response(
            200,
            json={"data": [{"embedding": [0.1, 0.2]}], "usage": {"prompt_tokens": 500}},
        )

    result = await embedding_client(handler, cost_per_million=0.02).embed(
        "target audience"
    )

    assert result.vector == [0.1, 0.2]
    assert result.prompt_tokens == 500
    assert result.cost == pytest.approx(500 * 0.02 / 1_000_000)


@pytest.mark.asyncio
async def test_embed_estimates_tokens_without_usage():
    def handler(request):
        return httpx.Response(200, json={"data": [{"embedding": [0.1]}]})

    result = await embedding_client(handler).embed("x" * 400)

    assert result.prompt_tokens == 100


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(500, json={"error": "boom"}), httpx.Response(200, json={"data": []})],
)
async def test_embed_failures_raise_retrieval_error(response):
    with pytest.raises(RetrievalError):
        await embedding_client(lambda request: response).embed("q")


def test_embedding_client_requires_api_key():
    with pytest.raises(ValueError, match="no API key"):
        EmbeddingClient(RetrievalConfig(), ProviderConfig(), HttpClientPool())


# ---------------------------------------------------------------------------
# Retriever
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_supabase_retriever_calls_rpc_and_filters():
    rows = [
        {"id": 1, "section": "icpAnalysisValidation", "field_path": "a", "content": "A", "similarity": 0.7},
        {"id": 2, "section": "icpAnalysisValidation", "field_path": "b", "content": "B", "similarity": 0.9},
        {"id": 3, "section": "icpAnalysisValidation", "field_path": "c", "content": "C", "similarity": 0.4},
    ]
    client, holder = mock_supabase(MagicMock(data=rows))
    embedder = AsyncMock(spec=EmbeddingClient)
    embedder.embed.return_value = Embedding(vector=[0.5], prompt_tokens=3, cost=0.0001)
    retriever = SupabaseChunkRetriever(
        config=RetrievalConfig(), embedder=embedder, client_holder=holder
    )

    result = await retriever.retrieve("doc-1", "who buys?", match_count=5, match_threshold=0.65)

    assert [c.id for c in result.chunks] == ["2", "1"]
    assert result.embedding_cost == 0.0001
    client.rpc.assert_called_once_with(
        "match_blueprint_chunks",
        {
            "query_embedding": [0.5],
            "p_blueprint_id": "doc-1",
            "match_threshold": 0.65,
            "match_count": 5,
            "section_filter": None,
        },
    )


@pytest.mark.asyncio
async def test_supabase_retriever_maps_api_errors():
    _, holder = mock_supabase(execute_error=APIError({"message": "function missing"}))
    embedder = AsyncMock(spec=EmbeddingClient)
    embedder.embed.return_value = Embedding(vector=[0.5], prompt_tokens=3, cost=0.0002)
    retriever = SupabaseChunkRetriever(
        config=RetrievalConfig(), embedder=embedder, client_holder=holder
    )

    with pytest.raises(RetrievalError, match="function missing") as exc_info:
        await retriever.retrieve("doc-1", "q")

    # The embedding already ran
    assert exc_info.value.cost == 0.0002


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def test_client_holder_requires_credentials():
    with pytest.raises(ValueError):
        SupabaseClientHolder(None, "key")


@pytest.mark.asyncio
async def test_supabase_store_fetch(blueprint):
    client, holder = mock_supabase(MagicMock(data={"output": blueprint}))
    store = SupabaseBlueprintStore(StoreConfig(provider="supabase"), client_holder=holder)

    result = await store.fetch_blueprint("doc-1")

    assert result == blueprint
    client.table.assert_called_once_with("blueprints")
    client.table.return_value.select.assert_called_once_with("output")


@pytest.mark.asyncio
async def test_supabase_store_fetch_missing_row():
    _, holder = mock_supabase(None)
    store = SupabaseBlueprintStore(StoreConfig(provider="supabase"), client_holder=holder)

    assert await store.fetch_blueprint("doc-1") is None


@pytest.mark.asyncio
async def test_supabase_store_apply_edit_calls_rpc(blueprint):
    client, holder = mock_supabase()
    client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value.execute = AsyncMock(
        return_value=MagicMock(data={"output": blueprint})
    )
    client.rpc.return_value.execute = AsyncMock(
        return_value=MagicMock(data=[{"version_id": "v-9", "version_number": 9}])
    )
    store = SupabaseBlueprintStore(StoreConfig(provider="supabase"), client_holder=holder)

    applied = await store.apply_edit("doc-1", "competitorAnalysis", "headline", "Grow Faster")

    assert applied.version_id == "v-9"
    assert applied.version_number == 9
    client.rpc.assert_called_once_with(
        "apply_blueprint_edit",
        {
            "p_blueprint_id": "doc-1",
            "p_section": "competitorAnalysis",
            "p_field_path": "headline",
            "p_new_value": '"Grow Faster"',
            "p_edited_by": "chat",
        },
    )


@pytest.mark.asyncio
async def test_supabase_store_apply_edit_unknown_blueprint():
    _, holder = mock_supabase(None)
    store = SupabaseBlueprintStore(StoreConfig(provider="supabase"), client_holder=holder)

    with pytest.raises(BlueprintNotFoundError):
        await store.apply_edit("doc-1", "competitorAnalysis", "headline", "x")


@pytest.mark.asyncio
async def test_supabase_store_maps_api_errors():
    _, holder = mock_supabase(execute_error=APIError({"message": "permission denied"}))
    store = SupabaseBlueprintStore(StoreConfig(provider="supabase"), client_holder=holder)

    with pytest.raises(StoreError, match="permission denied"):
        await store.fetch_blueprint("doc-1")
