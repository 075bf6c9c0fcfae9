"""Abstract base classes for non-LLM collaborators.

LLM access is handled by :mod:`blueprint_chat.core.model_registry` using
pydantic-ai directly.  These bases cover chunk retrieval and the blueprint
document store, both injected into the chat orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from blueprint_chat.models.domain import AppliedEdit, RetrievalResult, RetrievedChunk


class BaseRetrieverProvider(ABC):
    """Retrieve the blueprint chunks most relevant to a query."""

    name: str = "base"

    @abstractmethod
    async def retrieve(
        self,
        document_id: str,
        query: str,
        match_count: int = 5,
        match_threshold: float = 0.65,
        section_filter: str | None = None,
    ) -> RetrievalResult:
        """Return at most *match_count* chunks scoring ≥ *match_threshold*."""
        ...


class BaseBlueprintStore(ABC):
    """Read and mutate persisted blueprint documents."""

    name: str = "base"

    @abstractmethod
    async def fetch_blueprint(self, document_id: str) -> dict[str, Any] | None:
        """Return the whole blueprint, or ``None`` if it does not exist."""
        ...

    async def fetch_section(
        self, document_id: str, section: str
    ) -> dict[str, Any] | None:
        """Return one section's data, or ``None`` if blueprint or section is absent."""
        blueprint = await self.fetch_blueprint(document_id)
        if not blueprint:
            return None
        data = blueprint.get(section)
        return data if isinstance(data, dict) and data else None

    @abstractmethod
    async def apply_edit(
        self,
        document_id: str,
        section: str,
        field_path: str,
        new_value: Any,
    ) -> AppliedEdit:
        """Write *new_value* at *field_path* inside *section*.

        Raises:
            BlueprintNotFoundError: If the blueprint does not exist.
            StoreError: If the write fails.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the store."""


def select_chunks(
    chunks: Iterable[RetrievedChunk],
    match_count: int,
    match_threshold: float,
) -> list[RetrievedChunk]:
    """Drop below-threshold chunks, order by similarity, cap at *match_count*."""
    kept = [c for c in chunks if c.similarity >= match_threshold]
    kept.sort(key=lambda c: c.similarity, reverse=True)
    return kept[:match_count]
