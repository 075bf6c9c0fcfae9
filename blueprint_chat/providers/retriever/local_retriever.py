"""Lexical retriever over the blueprint store.

Needs no embedding endpoint or vector index: the blueprint is flattened by
:func:`blueprint_chat.providers.chunking.chunk_blueprint` and each chunk is
scored by the share of query keywords it contains.  Useful for local
development and for deployments without pgvector.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from blueprint_chat.config.models import ResilienceConfig
from blueprint_chat.core.resilience import safe_execute
from blueprint_chat.core.telemetry import trace_span
from blueprint_chat.models.domain import RetrievalResult
from blueprint_chat.providers.base import (
    BaseBlueprintStore,
    BaseRetrieverProvider,
    select_chunks,
)
from blueprint_chat.providers.chunking import chunk_blueprint
from blueprint_chat.providers.factory import register_provider

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9]+")

_STOPWORDS = frozenset(
    """
    a about an and are as at be by can could do does for from has have how i
    in is it its me my of on or our should so that the their them there these
    they this to us was we were what when where which who why will with would
    you your
    """.split()
)


def keywords(text: str) -> set[str]:
    """Lowercased, de-pluralised content words of *text*."""
    found: set[str] = set()
    for word in _WORD.findall(text.lower()):
        if word in _STOPWORDS:
            continue
        if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
            word = word[:-1]
        found.add(word)
    return found


def overlap_score(query_terms: set[str], content: str) -> float:
    """Fraction of *query_terms* present in *content*, in ``[0, 1]``."""
    if not query_terms:
        return 0.0
    return len(query_terms & keywords(content)) / len(query_terms)


@register_provider("retriever", "local")
class LocalRetriever(BaseRetrieverProvider):
    """Scores flattened blueprint chunks by keyword overlap with the query."""

    name = "local"

    def __init__(
        self,
        store: BaseBlueprintStore,
        resilience: ResilienceConfig | None = None,
        **_: Any,
    ) -> None:
        self.store = store
        self.resilience = resilience or ResilienceConfig()

    @trace_span("retrieve", stage="retrieval")
    async def retrieve(
        self,
        document_id: str,
        query: str,
        match_count: int = 5,
        match_threshold: float = 0.65,
        section_filter: str | None = None,
    ) -> RetrievalResult:
        blueprint = await safe_execute(
            self.store.fetch_blueprint,
            document_id,
            attempts=self.resilience.retry_attempts,
            timeout=self.resilience.call_timeout_seconds,
        )
        if not blueprint:
            return RetrievalResult()

        terms = keywords(query)
        scored = []
        for chunk in chunk_blueprint(document_id, blueprint):
            if section_filter and chunk.section != section_filter:
                continue
            score = overlap_score(terms, chunk.content)
            if score > 0:
                scored.append(chunk.model_copy(update={"similarity": round(score, 4)}))

        selected = select_chunks(scored, match_count, match_threshold)
        logger.debug(
            "Local retrieval for %s: %d scored, %d selected",
            document_id,
            len(scored),
            len(selected),
        )
        return RetrievalResult(chunks=selected)
