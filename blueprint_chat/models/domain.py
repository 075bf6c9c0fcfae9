"""Domain models shared across the application."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ConfidenceLevel = Literal["high", "medium", "low"]


class BlueprintSection(StrEnum):
    """Top-level sections of a strategic blueprint document."""

    INDUSTRY_MARKET_OVERVIEW = "industryMarketOverview"
    ICP_ANALYSIS_VALIDATION = "icpAnalysisValidation"
    OFFER_ANALYSIS_VIABILITY = "offerAnalysisViability"
    COMPETITOR_ANALYSIS = "competitorAnalysis"
    CROSS_ANALYSIS_SYNTHESIS = "crossAnalysisSynthesis"


SECTION_TITLES: dict[str, str] = {
    BlueprintSection.INDUSTRY_MARKET_OVERVIEW: "Industry & Market Overview",
    BlueprintSection.ICP_ANALYSIS_VALIDATION: "ICP Analysis & Validation",
    BlueprintSection.OFFER_ANALYSIS_VIABILITY: "Offer Analysis & Viability",
    BlueprintSection.COMPETITOR_ANALYSIS: "Competitor Analysis",
    BlueprintSection.CROSS_ANALYSIS_SYNTHESIS: "Cross-Analysis Synthesis",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


class QuestionIntent(_CamelModel):
    """The user wants information from the blueprint."""

    type: Literal["question"] = "question"
    topic: str = "unknown"
    sections: list[BlueprintSection] = Field(default_factory=list)


class GeneralIntent(_CamelModel):
    """Greetings, small talk or a loosely scoped request."""

    type: Literal["general"] = "general"
    topic: str = "conversation"


class EditIntent(_CamelModel):
    """The user wants to change a field of one section."""

    type: Literal["edit"] = "edit"
    section: BlueprintSection
    field: str | None = None
    desired_change: str | None = Field(None, alias="desiredChange")


class ExplainIntent(_CamelModel):
    """The user wants to know *why* something in the blueprint is so."""

    type: Literal["explain"] = "explain"
    section: BlueprintSection
    field: str | None = None
    what_to_explain: str | None = Field(None, alias="whatToExplain")


class RegenerateIntent(_CamelModel):
    """The user wants a section redone, optionally with instructions."""

    type: Literal["regenerate"] = "regenerate"
    section: BlueprintSection
    instructions: str | None = None


class UnknownIntent(_CamelModel):
    """Classification failed or produced an unrecognised tag."""

    type: Literal["unknown"] = "unknown"


ChatIntent = Annotated[
    QuestionIntent
    | GeneralIntent
    | EditIntent
    | ExplainIntent
    | RegenerateIntent
    | UnknownIntent,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------


class TokenUsage(_CamelModel):
    """Token usage statistics from an LLM call."""

    prompt_tokens: int = Field(0, ge=0, alias="promptTokens")
    completion_tokens: int = Field(0, ge=0, alias="completionTokens")
    total_tokens: int = Field(0, ge=0, alias="totalTokens")


class IntentClassification(_CamelModel):
    """Output of the intent classifier, including its own usage."""

    intent: ChatIntent
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = Field(0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


class RetrievedChunk(_CamelModel):
    """A fragment of blueprint content scored against the query."""

    id: str
    section: str
    field_path: str = Field(alias="fieldPath")
    content: str = ""
    similarity: float = Field(ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RetrievalResult(_CamelModel):
    """Chunks above threshold plus the cost of embedding the query."""

    chunks: list[RetrievedChunk] = Field(default_factory=list)
    embedding_cost: float = Field(0.0, ge=0.0, alias="embeddingCost")


# ---------------------------------------------------------------------------
# Agent results
# ---------------------------------------------------------------------------


class ConfidenceFactors(_CamelModel):
    avg_similarity: float = Field(alias="avgSimilarity")
    chunk_count: int = Field(alias="chunkCount")
    coverage_score: float = Field(alias="coverageScore")
    high_quality_chunks: int = Field(alias="highQualityChunks")


class ConfidenceResult(_CamelModel):
    """Multi-factor confidence breakdown for a QA answer."""

    level: ConfidenceLevel
    factors: ConfidenceFactors
    explanation: str


class SourceQuality(_CamelModel):
    """How well the retrieved chunks support a generated answer."""

    avg_relevance: float = Field(alias="avgRelevance")
    source_count: int = Field(alias="sourceCount")
    high_quality_sources: int = Field(alias="highQualitySources")
    explanation: str


class QAResult(_CamelModel):
    answer: str
    confidence: ConfidenceLevel
    confidence_result: ConfidenceResult | None = Field(None, alias="confidenceResult")
    source_quality: SourceQuality | None = Field(None, alias="sourceQuality")
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = Field(0.0, ge=0.0)


class EditResult(_CamelModel):
    """A proposed field-level change. Never applied by the chat turn."""

    section: str
    field_path: str = Field(alias="fieldPath")
    old_value: Any = Field(None, alias="oldValue")
    new_value: Any = Field(None, alias="newValue")
    explanation: str
    diff_preview: str = Field(alias="diffPreview")
    requires_confirmation: Literal[True] = Field(True, alias="requiresConfirmation")


class EditProposal(_CamelModel):
    result: EditResult
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = Field(0.0, ge=0.0)


class RelatedFactor(_CamelModel):
    """A cross-section factor cited by an explanation."""

    section: str
    factor: str
    relevance: str = ""


class ExplainResult(_CamelModel):
    explanation: str
    confidence: ConfidenceLevel = "medium"
    related_factors: list[RelatedFactor] = Field(
        default_factory=list, alias="relatedFactors"
    )
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = Field(0.0, ge=0.0)


class AppliedEdit(_CamelModel):
    """Version information returned by the store after applying an edit."""

    version_id: str | None = Field(None, alias="versionId")
    version_number: int | None = Field(None, alias="versionNumber")
