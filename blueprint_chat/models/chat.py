"""Chat turn request and response envelopes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from blueprint_chat.models.domain import (
    ChatIntent,
    ConfidenceLevel,
    ConfidenceResult,
    EditResult,
    RelatedFactor,
    RetrievedChunk,
    SourceQuality,
)


class ChatMessage(BaseModel):
    """One prior message of the conversation, supplied by the client."""

    role: Literal["user", "assistant"]
    content: str


class ChatTurnRequest(BaseModel):
    """Incoming chat turn body.

    ``message`` is optional at the schema level so that a missing or blank
    message is reported as ``Message is required`` rather than a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    conversation_id: str | None = Field(None, alias="conversationId")
    chat_history: list[ChatMessage] = Field(default_factory=list, alias="chatHistory")


class SourceRef(BaseModel):
    """Client-facing reference to a retrieved chunk."""

    model_config = ConfigDict(populate_by_name=True)

    chunk_id: str = Field(alias="chunkId")
    section: str
    field_path: str = Field(alias="fieldPath")
    similarity: float

    @classmethod
    def from_chunk(cls, chunk: RetrievedChunk) -> SourceRef:
        return cls(
            chunk_id=chunk.id,
            section=chunk.section,
            field_path=chunk.field_path,
            similarity=chunk.similarity,
        )


class TurnMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tokens_used: int = Field(alias="tokensUsed")
    cost: float
    processing_time_ms: int = Field(alias="processingTimeMs")
    intent_classification_cost: float = Field(alias="intentClassificationCost")


class PendingAction(BaseModel):
    """An edit proposal awaiting a later confirm/cancel turn."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["edit"] = "edit"
    edit_result: EditResult = Field(alias="editResult")


class ChatTurnResponse(BaseModel):
    """The single envelope returned by every chat turn.

    Branch-specific fields stay ``None`` unless the branch that owns them ran;
    the API serialises with ``exclude_none`` so they are omitted entirely.
    """

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    response: str
    intent: ChatIntent
    sources: list[SourceRef] = Field(default_factory=list)
    confidence: ConfidenceLevel = "medium"
    metadata: TurnMetadata
    pending_action: PendingAction | None = Field(None, alias="pendingAction")
    related_factors: list[RelatedFactor] | None = Field(None, alias="relatedFactors")
    is_explanation: bool | None = Field(None, alias="isExplanation")
    confidence_result: ConfidenceResult | None = Field(None, alias="confidenceResult")
    source_quality: SourceQuality | None = Field(None, alias="sourceQuality")

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys and absent fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
