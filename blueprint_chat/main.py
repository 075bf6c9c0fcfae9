"""Blueprint chat service: FastAPI entry point."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from blueprint_chat.api.router import health_router, router
from blueprint_chat.config.loader import load_config
from blueprint_chat.core.http_client_pool import HttpClientPool
from blueprint_chat.core.telemetry import TelemetryService
from blueprint_chat.services.service_container import build_services

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Request timeout middleware
# ---------------------------------------------------------------------------

DEFAULT_REQUEST_TIMEOUT_SECONDS = 120.0


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request exceeds ``server.requestTimeoutSeconds``."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        timeout = getattr(
            request.app.state, "request_timeout", DEFAULT_REQUEST_TIMEOUT_SECONDS
        )
        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout)
        except TimeoutError:
            logger.warning("Request timed out after %ss: %s", timeout, request.url.path)
            return Response(
                content='{"error":"Request timed out"}',
                status_code=504,
                media_type="application/json",
            )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialise and tear down shared resources."""
    config = load_config()
    telemetry = TelemetryService(config.server.service_name, VERSION)

    http_pool = HttpClientPool()
    services = build_services(config, http_pool)

    app.state.http_pool = http_pool
    app.state.request_timeout = config.server.request_timeout_seconds
    app.state.orchestrator = services.orchestrator
    app.state.edit_confirmation = services.edit_confirmation
    app.state.store = services.store
    app.state.retriever = services.retriever

    logger.info("Blueprint chat started: %s", config.server.service_name)

    yield

    await services.close()
    await http_pool.close_all()
    telemetry.shutdown()
    logger.info("Blueprint chat shutdown complete")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Blueprint Chat",
    description="Intent-routed chat over generated strategic blueprints",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(TimeoutMiddleware)
app.include_router(router)
app.include_router(health_router)
