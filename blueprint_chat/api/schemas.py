"""Request and response schemas for the API layer.

The chat turn envelopes live in :mod:`blueprint_chat.models.chat`; this
module holds the schemas of the side endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PendingEditPayload(BaseModel):
    """The ``editResult`` of a pending action, as echoed back by the client.

    ``section`` and ``fieldPath`` are optional here so that their absence is
    reported as a 400 rather than a validation 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    section: str | None = None
    field_path: str | None = Field(None, alias="fieldPath")
    new_value: Any = Field(None, alias="newValue")


class ConfirmEditRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str | None = Field(None, alias="conversationId")
    decision: Literal["confirm", "cancel"]
    edit_result: PendingEditPayload = Field(
        default_factory=PendingEditPayload, alias="editResult"
    )


class ConfirmEditResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    version_id: str | None = Field(None, alias="versionId")
    version_number: int | None = Field(None, alias="versionNumber")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    retriever: str
    store: str
