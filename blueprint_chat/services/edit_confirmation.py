"""Applies or discards an edit proposed by a previous chat turn.

The chat turn itself never mutates a blueprint.  When the user replies
"confirm", the client posts the pending ``editResult`` back and this service
writes it through the store; "cancel" is acknowledged without any write.
"""

from __future__ import annotations

import logging
from typing import Any

from blueprint_chat.config.models import ResilienceConfig
from blueprint_chat.core.resilience import bounded
from blueprint_chat.models.domain import AppliedEdit, BlueprintSection
from blueprint_chat.providers.base import BaseBlueprintStore
from blueprint_chat.services.exceptions import InvalidEditError

logger = logging.getLogger(__name__)


class EditConfirmationService:
    def __init__(
        self,
        store: BaseBlueprintStore,
        resilience: ResilienceConfig | None = None,
    ) -> None:
        self.store = store
        self.resilience = resilience or ResilienceConfig()

    async def apply(
        self,
        document_id: str,
        section: str | None,
        field_path: str | None,
        new_value: Any,
    ) -> AppliedEdit:
        """Write a confirmed edit.

        Not retried: the store records a new version on every write.

        Raises:
            InvalidEditError: If *section* or *field_path* is missing, or
                *section* is not a blueprint section.
            BlueprintNotFoundError: If the blueprint does not exist.
            StoreError: If the write fails.
        """
        if not section or not field_path or not field_path.strip():
            raise InvalidEditError("Missing section or fieldPath in editResult")
        if section not in {s.value for s in BlueprintSection}:
            raise InvalidEditError(f"Unknown section: {section}")

        applied = await bounded(
            self.store.apply_edit(document_id, section, field_path.strip(), new_value),
            self.resilience.call_timeout_seconds,
        )
        logger.info(
            "Confirmed edit on %s: %s.%s -> version %s",
            document_id,
            section,
            field_path,
            applied.version_number,
        )
        return applied

    async def cancel(self, document_id: str, conversation_id: str | None) -> None:
        logger.info(
            "Edit cancelled on %s (conversation %s)", document_id, conversation_id
        )
