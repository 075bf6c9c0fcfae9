"""Service container: builds the registry, providers and services from config.

Created once at application startup and stored on ``app.state``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from blueprint_chat.config.models import ChatServiceConfig
from blueprint_chat.core.http_client_pool import HttpClientPool
from blueprint_chat.core.model_registry import ModelRegistry
from blueprint_chat.providers.base import BaseBlueprintStore, BaseRetrieverProvider
from blueprint_chat.providers.embeddings import EmbeddingClient
from blueprint_chat.providers.factory import ProviderFactory
from blueprint_chat.providers.store.supabase_store import SupabaseClientHolder
from blueprint_chat.services.edit_confirmation import EditConfirmationService
from blueprint_chat.services.orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    registry: ModelRegistry
    store: BaseBlueprintStore
    retriever: BaseRetrieverProvider
    orchestrator: ChatOrchestrator
    edit_confirmation: EditConfirmationService

    async def close(self) -> None:
        await self.store.close()


def build_services(
    config: ChatServiceConfig, http_pool: HttpClientPool
) -> ServiceContainer:
    """Create every collaborator of a chat turn from *config*.

    Raises:
        ValueError: If a configured provider is unknown or lacks credentials.
    """
    store_cfg = config.store_config
    retrieval_cfg = config.retrieval_config

    # One Supabase client shared by the store and the retriever
    supabase: SupabaseClientHolder | None = None
    if "supabase" in (store_cfg.provider, retrieval_cfg.provider):
        supabase = SupabaseClientHolder(store_cfg.url, store_cfg.key)

    store = ProviderFactory.create(
        "store", store_cfg.provider, config=store_cfg, client_holder=supabase
    )

    if retrieval_cfg.provider == "supabase":
        retriever = ProviderFactory.create(
            "retriever",
            "supabase",
            config=retrieval_cfg,
            embedder=EmbeddingClient(retrieval_cfg, config.provider_config, http_pool),
            client_holder=supabase,
            resilience=config.resilience,
        )
    else:
        retriever = ProviderFactory.create(
            "retriever",
            retrieval_cfg.provider,
            config=retrieval_cfg,
            store=store,
            resilience=config.resilience,
        )

    registry = ModelRegistry(config.llm_config, config.provider_config, http_pool)
    logger.info(
        "Services ready: store=%s retriever=%s models=%s",
        store.name,
        retriever.name,
        registry.available_models,
    )

    return ServiceContainer(
        registry=registry,
        store=store,
        retriever=retriever,
        orchestrator=ChatOrchestrator(
            registry,
            retriever,
            store,
            retrieval_config=retrieval_cfg,
            resilience=config.resilience,
        ),
        edit_confirmation=EditConfirmationService(store, config.resilience),
    )
