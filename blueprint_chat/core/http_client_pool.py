"""Shared HTTP client pool for LLM and embedding provider connections.

Manages :class:`httpx.AsyncClient` instances keyed by provider name,
enabling TCP connection reuse across every chat turn.
Lifecycle is tied to the FastAPI application lifespan.
"""

import httpx


class HttpClientPool:
    """Manages shared ``httpx.AsyncClient`` instances per provider."""

    def __init__(self) -> None:
        self._clients: dict[str, httpx.AsyncClient] = {}

    def get(
        self,
        provider: str,
        *,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
        max_connections: int = 100,
        max_keepalive: int = 20,
    ) -> httpx.AsyncClient:
        """Get or create a shared HTTP client for *provider*.

        The client is created lazily on first access and reused thereafter;
        ``base_url`` and ``headers`` only apply to that first creation.
        """
        if provider not in self._clients:
            self._clients[provider] = httpx.AsyncClient(
                base_url=base_url,
                headers=headers,
                timeout=httpx.Timeout(timeout),
                limits=httpx.Limits(
                    max_connections=max_connections,
                    max_keepalive_connections=max_keepalive,
                ),
            )
        return self._clients[provider]

    @property
    def providers(self) -> list[str]:
        return sorted(self._clients)

    async def close_all(self) -> None:
        """Close all managed HTTP clients.  Call during app shutdown."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
