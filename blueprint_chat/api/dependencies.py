"""FastAPI dependency injection: services created during the app lifespan."""

from __future__ import annotations

from fastapi import Request

from blueprint_chat.providers.base import BaseBlueprintStore, BaseRetrieverProvider
from blueprint_chat.services.edit_confirmation import EditConfirmationService
from blueprint_chat.services.orchestrator import ChatOrchestrator


def get_orchestrator(request: Request) -> ChatOrchestrator:
    """Retrieve the :class:`ChatOrchestrator` from app state."""
    return request.app.state.orchestrator


def get_edit_confirmation(request: Request) -> EditConfirmationService:
    return request.app.state.edit_confirmation


def get_store(request: Request) -> BaseBlueprintStore:
    return request.app.state.store


def get_retriever(request: Request) -> BaseRetrieverProvider:
    return request.app.state.retriever
