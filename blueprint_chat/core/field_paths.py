"""Dot/bracket field paths into blueprint section data.

Paths look like ``recommendedPositioning``, ``painPoints.primary[0]`` or
``competitors.1.name``; numeric segments index into lists.
"""

from __future__ import annotations

import json
import re
from typing import Any

_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

_MISSING = object()


def parse_path(path: str) -> list[str | int]:
    """Split *path* into dict keys and list indices.

    Raises:
        ValueError: If *path* is empty or contains no usable segment.
    """
    parts: list[str | int] = []
    for name, index in _SEGMENT.findall(path.strip()):
        if index:
            parts.append(int(index))
        elif name.isdigit():
            parts.append(int(name))
        else:
            parts.append(name)
    if not parts:
        raise ValueError(f"Invalid field path: {path!r}")
    return parts


def get_value_at_path(data: Any, path: str, default: Any = None) -> Any:
    """Return the value at *path*, or *default* when any segment is missing."""
    try:
        parts = parse_path(path)
    except ValueError:
        return default

    current = data
    for part in parts:
        if isinstance(part, int):
            if not isinstance(current, list) or part >= len(current):
                return default
            current = current[part]
        else:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
    return current


def has_path(data: Any, path: str) -> bool:
    return get_value_at_path(data, path, _MISSING) is not _MISSING


def set_value_at_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Set *value* at *path* in place.

    Intermediate dicts are created for missing keys; list indices must
    already exist, except that ``len(list)`` appends.

    Raises:
        KeyError: If a list index is out of range or a segment crosses a
            scalar value.
    """
    parts = parse_path(path)
    current: Any = data
    for part, following in zip(parts, parts[1:]):
        if isinstance(part, int):
            if not isinstance(current, list) or part >= len(current):
                raise KeyError(f"Index {part} out of range in path {path!r}")
            current = current[part]
        else:
            if not isinstance(current, dict):
                raise KeyError(f"Segment {part!r} is not an object in path {path!r}")
            if part not in current:
                current[part] = [] if isinstance(following, int) else {}
            current = current[part]

    last = parts[-1]
    if isinstance(last, int):
        if not isinstance(current, list) or last > len(current):
            raise KeyError(f"Index {last} out of range in path {path!r}")
        if last == len(current):
            current.append(value)
        else:
            current[last] = value
    else:
        if not isinstance(current, dict):
            raise KeyError(f"Segment {last!r} is not an object in path {path!r}")
        current[last] = value


def format_value(value: Any) -> str:
    """Render a field value for a one-line diff preview."""
    if isinstance(value, str):
        return f'"{value[:97]}..."' if len(value) > 100 else f'"{value}"'
    if isinstance(value, list):
        if not value:
            return "[]"
        if isinstance(value[0], str):
            return "[" + ", ".join(f'"{item}"' for item in value) + "]"
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return json.dumps(value, indent=2, ensure_ascii=False)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def diff_preview(old_value: Any, new_value: Any) -> str:
    return f"- Old: {format_value(old_value)}\n+ New: {format_value(new_value)}"
