"""JSON-file blueprint store for local development and tests.

Each blueprint lives in ``<directory>/<document_id>.json`` as either the
bare blueprint object or ``{"output": {...}, "versionNumber": n}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from pathlib import Path
from typing import Any

from blueprint_chat.config.models import StoreConfig
from blueprint_chat.core.field_paths import set_value_at_path
from blueprint_chat.models.domain import AppliedEdit
from blueprint_chat.providers.base import BaseBlueprintStore
from blueprint_chat.providers.factory import register_provider
from blueprint_chat.services.exceptions import BlueprintNotFoundError, StoreError

logger = logging.getLogger(__name__)

_DOCUMENT_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


@register_provider("store", "file")
class FileBlueprintStore(BaseBlueprintStore):
    """Blueprint store backed by a directory of JSON files."""

    name = "file"

    def __init__(self, config: StoreConfig, **_: Any) -> None:
        self.directory = Path(config.directory)
        self._write_lock = asyncio.Lock()

    async def fetch_blueprint(self, document_id: str) -> dict[str, Any] | None:
        path = self._path_for(document_id)
        if path is None or not path.exists():
            return None
        record = await asyncio.to_thread(self._read, path)
        return _unwrap(record)

    async def apply_edit(
        self,
        document_id: str,
        section: str,
        field_path: str,
        new_value: Any,
    ) -> AppliedEdit:
        path = self._path_for(document_id)
        if path is None or not path.exists():
            raise BlueprintNotFoundError(document_id)

        async with self._write_lock:
            record = await asyncio.to_thread(self._read, path)
            blueprint = _unwrap(record)
            section_data = blueprint.get(section)
            if not isinstance(section_data, dict):
                raise StoreError(f"Section {section!r} not found in {document_id}")
            try:
                set_value_at_path(section_data, field_path, new_value)
            except (KeyError, ValueError) as exc:
                raise StoreError(f"Cannot apply edit at {field_path!r}: {exc}") from exc

            version_number = int(record.get("versionNumber", 1)) + 1
            version_id = str(uuid.uuid4())
            await asyncio.to_thread(
                self._write,
                path,
                {
                    "output": blueprint,
                    "versionNumber": version_number,
                    "versionId": version_id,
                },
            )

        logger.info(
            "Applied edit to %s: %s.%s (version %d)",
            document_id,
            section,
            field_path,
            version_number,
        )
        return AppliedEdit(version_id=version_id, version_number=version_number)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path_for(self, document_id: str) -> Path | None:
        if not _DOCUMENT_ID.match(document_id):
            return None
        return self.directory / f"{document_id}.json"

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read blueprint file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Blueprint file {path} does not hold an object")
        return data

    @staticmethod
    def _write(path: Path, data: dict[str, Any]) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)


def _unwrap(record: dict[str, Any]) -> dict[str, Any]:
    output = record.get("output")
    return output if isinstance(output, dict) else record
