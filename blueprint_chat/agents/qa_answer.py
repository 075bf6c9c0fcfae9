"""Question-answering agent.

Answers a question from retrieved blueprint chunks.  Confidence is not
self-reported by the model: it is derived from the chunks themselves
(similarity, count and section coverage) so it stays comparable across
turns and models.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic_ai import Agent
from pydantic_ai.usage import RunUsage

from blueprint_chat.agents.history import recent_history
from blueprint_chat.core.model_registry import ModelRegistry, charge_failed_run
from blueprint_chat.core.resilience import bounded
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.chat import ChatMessage
from blueprint_chat.models.domain import (
    ConfidenceFactors,
    ConfidenceLevel,
    ConfidenceResult,
    QAResult,
    RetrievedChunk,
    SourceQuality,
)
from blueprint_chat.services.exceptions import AgentFailedError

logger = logging.getLogger(__name__)

HIGH_QUALITY_THRESHOLD = 0.85
MEDIUM_QUALITY_THRESHOLD = 0.65
HISTORY_MESSAGES = 6

_INSTRUCTIONS = """\
You are an expert assistant for Strategic Blueprint documents.
Your role is to answer questions about the blueprint accurately and helpfully.

RULES:
1. Answer using ONLY the provided context - do not make up information
2. If the answer isn't in the context, clearly say "I don't have that information in the blueprint"
3. Be specific and reference actual data from the blueprint
4. If multiple chunks are relevant, synthesize them into a coherent answer
5. Keep answers concise but complete
6. When referencing specific data, mention which section it comes from

CONTEXT SECTIONS:
- Industry Market Overview: Market landscape, pain points, psychological drivers
- ICP Analysis & Validation: ICP viability and validation
- Offer Analysis & Viability: Offer strength scores and recommendations
- Competitor Analysis: Competitor profiles and gaps
- Cross-Analysis Synthesis: Strategic recommendations and next steps
"""


def create_qa_agent(
    registry: ModelRegistry,
    model_name: str = "qa",
) -> Agent[None, str]:
    """Create a QA agent that produces a plain-text answer."""
    return registry.create_agent(
        model_name,
        output_type=str,
        instructions=_INSTRUCTIONS,
    )


def _percent(value: float) -> int:
    return round(value * 100)


def calculate_confidence(chunks: Sequence[RetrievedChunk]) -> ConfidenceResult:
    """Derive a confidence level from the supporting chunks."""
    if not chunks:
        return ConfidenceResult(
            level="low",
            factors=ConfidenceFactors(
                avg_similarity=0, chunk_count=0, coverage_score=0, high_quality_chunks=0
            ),
            explanation="No relevant sources found in the blueprint.",
        )

    count = len(chunks)
    avg = sum(c.similarity for c in chunks) / count
    high_quality = sum(1 for c in chunks if c.similarity > HIGH_QUALITY_THRESHOLD)
    unique_sections = len({c.section for c in chunks})
    coverage = min(1.0, (unique_sections / 5) * (count / 3))

    factors = ConfidenceFactors(
        avg_similarity=round(avg, 2),
        chunk_count=count,
        coverage_score=round(coverage, 2),
        high_quality_chunks=high_quality,
    )

    level: ConfidenceLevel
    if avg > 0.8 and count >= 3 and high_quality >= 2:
        level = "high"
        explanation = (
            f"High confidence: {high_quality} high-quality sources with "
            f"{_percent(avg)}% average relevance across {count} total sources."
        )
    elif avg > MEDIUM_QUALITY_THRESHOLD or count >= 2:
        level = "medium"
        if avg > MEDIUM_QUALITY_THRESHOLD:
            if count < 3:
                reason = "limited source count"
            elif high_quality < 2:
                reason = "few high-quality matches"
            else:
                reason = "moderate match quality"
            explanation = (
                f"Medium confidence: {_percent(avg)}% average relevance, but {reason}."
            )
        else:
            explanation = (
                f"Medium confidence: Found {count} relevant sources, but average "
                f"relevance is {_percent(avg)}%."
            )
    else:
        level = "low"
        found = (
            "Only 1 source found"
            if count == 1
            else f"{count} sources with {_percent(avg)}% average relevance"
        )
        explanation = f"Low confidence: {found}. Answer may be incomplete."

    return ConfidenceResult(level=level, factors=factors, explanation=explanation)


def build_source_quality(chunks: Sequence[RetrievedChunk]) -> SourceQuality:
    """Summarise how well the retrieved chunks support an answer."""
    if not chunks:
        return SourceQuality(
            avg_relevance=0,
            source_count=0,
            high_quality_sources=0,
            explanation="No sources available.",
        )

    count = len(chunks)
    avg = sum(c.similarity for c in chunks) / count
    high_quality = sum(1 for c in chunks if c.similarity > HIGH_QUALITY_THRESHOLD)

    if high_quality >= 3:
        explanation = (
            f"Excellent: {high_quality} highly relevant sources with "
            f"{_percent(avg)}% average match."
        )
    elif high_quality >= 1:
        noun = "source" if high_quality == 1 else "sources"
        explanation = (
            f"Good: {high_quality} highly relevant {noun} among {count} total "
            f"with {_percent(avg)}% average relevance."
        )
    elif count >= 2 and avg > MEDIUM_QUALITY_THRESHOLD:
        explanation = (
            f"Adequate: {count} sources with {_percent(avg)}% average relevance. "
            "No exceptionally strong matches."
        )
    else:
        noun = "source" if count == 1 else "sources"
        explanation = (
            f"Limited: {count} {noun} found with {_percent(avg)}% average "
            "relevance. Results may be incomplete."
        )

    return SourceQuality(
        avg_relevance=round(avg, 2),
        source_count=count,
        high_quality_sources=high_quality,
        explanation=explanation,
    )


def build_context_from_chunks(chunks: Sequence[RetrievedChunk]) -> str:
    """Render chunks as the numbered context block of the QA prompt."""
    if not chunks:
        return "No relevant context found in the blueprint."

    blocks = []
    for i, chunk in enumerate(chunks, start=1):
        title = chunk.metadata.get("sectionTitle", chunk.section)
        description = chunk.metadata.get("fieldDescription", chunk.field_path)
        relevance = (
            f" (relevance: {_percent(chunk.similarity)}%)" if chunk.similarity else ""
        )
        blocks.append(f"[{i}] {title} - {description}{relevance}:\n{chunk.content}")
    return "\n\n".join(blocks)


@trace_span("qa_agent", stage="agent")
async def answer_question(
    registry: ModelRegistry,
    query: str,
    chunks: Sequence[RetrievedChunk],
    chat_history: Sequence[ChatMessage] | None = None,
    *,
    model_name: str = "qa",
    timeout: float | None = None,
) -> QAResult:
    """Answer *query* from *chunks*.

    Empty *chunks* still produce an answer (typically "I don't have that
    information"), with ``low`` confidence.

    Raises:
        AgentFailedError: If the model call fails or times out.
    """
    prompt = (
        f"## Blueprint Context:\n{build_context_from_chunks(chunks)}\n\n"
        f"## Question:\n{query}\n\n"
        "Answer the question based on the blueprint data above."
    )

    run_usage = RunUsage()
    try:
        agent = create_qa_agent(registry, model_name)
        result = await bounded(
            agent.run(
                prompt,
                message_history=recent_history(chat_history, HISTORY_MESSAGES),
                usage=run_usage,
            ),
            timeout,
        )
    except Exception as e:
        usage, cost = charge_failed_run(registry, model_name, run_usage)
        raise AgentFailedError("qa", e, usage=usage, cost=cost) from e

    usage, cost = registry.charge(model_name, result.usage())
    confidence = calculate_confidence(chunks)
    return QAResult(
        answer=result.output,
        confidence=confidence.level,
        confidence_result=confidence,
        source_quality=build_source_quality(chunks),
        usage=usage,
        cost=cost,
    )
