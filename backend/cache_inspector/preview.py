from __future__ import annotations

import json
from typing import Any

from .settings import settings

NON_JSON_MARKER = "(non-JSON value)"
ELLIPSIS = "..."


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _scalar_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    # true / false / null and numbers keep their JSON spelling
    return json.dumps(value, ensure_ascii=False)


def preview_value(
    raw: bytes | str | None,
    *,
    structured_limit: int | None = None,
    scalar_limit: int | None = None,
) -> str | None:
    """
    One-line preview of a cached value.

    Returns None when there is nothing to show (missing or empty value),
    NON_JSON_MARKER when the value is not UTF-8 JSON, otherwise the compact JSON
    form of objects/arrays or the plain text of scalars, truncated.
    """
    if not raw:
        return None

    structured_limit = structured_limit or settings.STRUCTURED_PREVIEW_LIMIT
    scalar_limit = scalar_limit or settings.SCALAR_PREVIEW_LIMIT

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return NON_JSON_MARKER

    try:
        value = json.loads(raw)
    except ValueError:
        return NON_JSON_MARKER

    if isinstance(value, (dict, list)):
        compact = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return truncate(compact, structured_limit)
    return truncate(_scalar_text(value), scalar_limit)


def type_marker(redis_type: bytes | str | None) -> str:
    """Preview for keys that hold a hash, list, set, ... instead of a string."""
    if isinstance(redis_type, bytes):
        redis_type = redis_type.decode("utf-8", errors="replace")
    return f"({redis_type or 'unknown'} value)"


__all__ = ["ELLIPSIS", "NON_JSON_MARKER", "preview_value", "truncate", "type_marker"]
