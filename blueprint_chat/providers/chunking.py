"""Flatten a blueprint into retrievable chunks.

Each scalar field becomes one chunk; each item of a list becomes its own
chunk so that a single pain point or competitor can be retrieved
independently.  Field paths use dotted indices (``painPoints.primary.0``),
which :mod:`blueprint_chat.core.field_paths` understands.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator
from typing import Any

from blueprint_chat.models.domain import SECTION_TITLES, BlueprintSection, RetrievedChunk

# Nested objects deeper than this are rendered as a single JSON chunk.
MAX_DEPTH = 3


def chunk_blueprint(document_id: str, blueprint: dict[str, Any]) -> list[RetrievedChunk]:
    """Convert *blueprint* into unscored chunks (similarity 0)."""
    chunks: list[RetrievedChunk] = []
    for section in BlueprintSection:
        data = blueprint.get(section.value)
        if not isinstance(data, dict):
            continue
        for field_path, content in _walk(data, "", 0):
            chunks.append(
                RetrievedChunk(
                    id=_chunk_id(document_id, section.value, field_path),
                    section=section.value,
                    field_path=field_path,
                    content=content,
                    similarity=0.0,
                    metadata={
                        "sectionTitle": SECTION_TITLES[section],
                        "fieldDescription": _describe(field_path),
                    },
                )
            )
    return chunks


def _walk(value: Any, prefix: str, depth: int) -> Iterator[tuple[str, str]]:
    if isinstance(value, dict) and depth < MAX_DEPTH:
        for key, child in value.items():
            if key == "sources":
                continue
            path = f"{prefix}.{key}" if prefix else key
            yield from _walk(child, path, depth + 1)
    elif isinstance(value, list) and depth < MAX_DEPTH:
        for index, item in enumerate(value):
            yield from _walk(item, f"{prefix}.{index}", depth + 1)
    elif value not in (None, "", [], {}):
        text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        yield prefix, f"{_describe(prefix)}: {text}"


def _describe(field_path: str) -> str:
    """``painPoints.primary.0`` → ``Pain Points / Primary #1``."""
    words: list[str] = []
    for part in field_path.split("."):
        if part.isdigit():
            words[-1] = f"{words[-1]} #{int(part) + 1}" if words else f"#{part}"
            continue
        spaced = "".join(f" {c}" if c.isupper() else c for c in part).strip()
        words.append(spaced[:1].upper() + spaced[1:])
    return " / ".join(words)


def _chunk_id(document_id: str, section: str, field_path: str) -> str:
    digest = hashlib.sha1(f"{document_id}:{section}:{field_path}".encode()).hexdigest()
    return digest[:16]
