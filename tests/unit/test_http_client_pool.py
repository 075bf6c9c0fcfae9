"""Tests for HttpClientPool."""

from unittest.mock import AsyncMock, patch

import pytest

from blueprint_chat.core.http_client_pool import HttpClientPool


def test_get_creates_client_lazily_and_reuses_it():
    pool = HttpClientPool()
    assert pool.providers == []

    first = pool.get(
        "embeddings:openrouter",
        base_url="https://openrouter.ai/api/v1",
        headers={"Authorization": "Bearer sk-test"},
    )
    second = pool.get("embeddings:openrouter")

    assert first is second
    assert str(first.base_url) == "https://openrouter.ai/api/v1/"
    assert first.headers["Authorization"] == "Bearer sk-test"
    assert pool.providers == ["embeddings:openrouter"]


@patch("blueprint_chat.core.http_client_pool.httpx.AsyncClient")
def test_get_applies_limits_and_timeout(mock_client_cls):
    pool = HttpClientPool()

    pool.get("openai", timeout=5.0, max_connections=10, max_keepalive=2)

    kwargs = mock_client_cls.call_args.kwargs
    assert kwargs["timeout"].read == 5.0
    assert kwargs["limits"].max_connections == 10
    assert kwargs["limits"].max_keepalive_connections == 2


@pytest.mark.asyncio
async def test_close_all_closes_every_client():
    pool = HttpClientPool()
    clients = {name: AsyncMock() for name in ("openrouter", "openai")}
    pool._clients.update(clients)

    await pool.close_all()

    for client in clients.values():
        client.aclose.assert_awaited_once()
    assert pool.providers == []
