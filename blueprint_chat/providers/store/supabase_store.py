"""Supabase-backed blueprint store.

Blueprints live in the ``blueprints`` table with the generated document in
the ``output`` JSON column.  Edits go through the ``apply_blueprint_edit``
RPC, which also records a new version row.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from blueprint_chat.config.models import StoreConfig
from blueprint_chat.models.domain import AppliedEdit
from blueprint_chat.providers.base import BaseBlueprintStore
from blueprint_chat.providers.factory import register_provider
from blueprint_chat.services.exceptions import BlueprintNotFoundError, StoreError

logger = logging.getLogger(__name__)


class SupabaseClientHolder:
    """Lazily creates one shared async Supabase client."""

    def __init__(self, url: str | None, key: str | None) -> None:
        if not url or not key:
            raise ValueError("Supabase provider requires storeConfig.url and storeConfig.key")
        self._url = url
        self._key = key
        self._client: AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> AsyncClient:
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client


@register_provider("store", "supabase")
class SupabaseBlueprintStore(BaseBlueprintStore):
    """Reads blueprints from Supabase and applies edits through an RPC."""

    name = "supabase"

    def __init__(
        self,
        config: StoreConfig,
        client_holder: SupabaseClientHolder | None = None,
        **_: Any,
    ) -> None:
        self.config = config
        self.clients = client_holder or SupabaseClientHolder(config.url, config.key)

    async def fetch_blueprint(self, document_id: str) -> dict[str, Any] | None:
        client = await self.clients.get()
        try:
            response = await (
                client.table(self.config.table)
                .select(self.config.output_column)
                .eq("id", document_id)
                .maybe_single()
                .execute()
            )
        except APIError as exc:
            raise StoreError(f"Failed to fetch blueprint {document_id}: {exc.message}") from exc

        if response is None or not response.data:
            return None
        output = response.data.get(self.config.output_column)
        return output if isinstance(output, dict) else None

    async def apply_edit(
        self,
        document_id: str,
        section: str,
        field_path: str,
        new_value: Any,
    ) -> AppliedEdit:
        if await self.fetch_blueprint(document_id) is None:
            raise BlueprintNotFoundError(document_id)

        client = await self.clients.get()
        try:
            response = await client.rpc(
                self.config.apply_edit_rpc,
                {
                    "p_blueprint_id": document_id,
                    "p_section": section,
                    "p_field_path": field_path,
                    "p_new_value": json.dumps(new_value),
                    "p_edited_by": "chat",
                },
            ).execute()
        except APIError as exc:
            raise StoreError(f"Failed to apply edit: {exc.message}") from exc

        data = response.data or {}
        if isinstance(data, list):
            data = data[0] if data else {}
        logger.info("Applied edit to %s: %s.%s", document_id, section, field_path)
        return AppliedEdit(
            version_id=data.get("version_id"),
            version_number=data.get("version_number"),
        )
