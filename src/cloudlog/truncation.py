"""
Size truncation for serialized entries.

Entries over `max_entry_size` are shrunk rather than dropped: a text payload
loses characters from its tail; a structured payload has its free-text fields
(stack traces and messages first) shortened in priority order until the
overage is paid off or the candidate fields run out.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableMapping
from typing import Any, Dict, List, Optional

import orjson

from .logging import get_logger

logger = get_logger("cloudlog.truncation")

JSON_PAYLOAD_PREFIX = "jsonPayload"

# Field shapes produced by common structured loggers (winston, bunyan/pino) plus a generic "message"
DEFAULT_JSON_FIELDS_TO_TRUNCATE: tuple[str, ...] = (
    "jsonPayload.fields.metadata.structValue.fields.stack.stringValue",
    "jsonPayload.fields.msg.stringValue",
    "jsonPayload.fields.err.structValue.fields.stack.stringValue",
    "jsonPayload.fields.err.structValue.fields.message.stringValue",
    "jsonPayload.fields.message.stringValue",
)


def build_truncation_fields(custom: Optional[Iterable[Optional[str]]] = None) -> List[str]:
    """Custom `jsonPayload...` paths (deduplicated, not already defaults) followed by the defaults."""
    extra: List[str] = []
    for path in custom or ():
        if (
            path
            and path.startswith(JSON_PAYLOAD_PREFIX)
            and path not in DEFAULT_JSON_FIELDS_TO_TRUNCATE
            and path not in extra
        ):
            extra.append(path)
    return extra + list(DEFAULT_JSON_FIELDS_TO_TRUNCATE)


def serialized_size(entry: Any) -> int:
    """Size in bytes of the compact JSON encoding of `entry`."""
    return len(orjson.dumps(entry, default=str))


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path (`a.b.c`) from nested mappings."""
    current = obj
    for part in path.split("."):
        if not isinstance(current, MutableMapping) or part not in current:
            return default
        current = current[part]
    return current


def set_path(obj: MutableMapping, path: str, value: Any) -> None:
    """Write `value` at an existing dotted path."""
    *parents, leaf = path.split(".")
    current = obj
    for part in parents:
        current = current[part]
    current[leaf] = value


def _shorten(text: str, by: int) -> str:
    return text[: max(len(text) - by, 0)]


def truncate_entry(entry: Dict[str, Any], max_size: Optional[int], fields: Iterable[str]) -> Dict[str, Any]:
    """Shrink `entry` in place until it serializes within `max_size` bytes, best effort."""
    if max_size is None:
        return entry

    size = serialized_size(entry)
    overage = size - max_size
    if overage <= 0:
        return entry

    if entry.get("textPayload"):
        entry["textPayload"] = _shorten(entry["textPayload"], overage)
        logger.debug("entries_truncated", insert_id=entry.get("insertId"), size=size, overage=overage, field="textPayload")
        return entry

    remaining = overage
    touched: List[str] = []
    for path in fields:
        value = get_path(entry, path)
        if not isinstance(value, str) or not value:
            continue
        set_path(entry, path, _shorten(value, remaining))
        remaining -= min(len(value), remaining)
        touched.append(path)
        if remaining <= 0:
            break

    logger.debug(
        "entries_truncated",
        insert_id=entry.get("insertId"),
        size=size,
        overage=overage,
        unresolved=max(remaining, 0),
        fields=touched,
    )
    return entry


def truncate_entries(entries: List[Dict[str, Any]], max_size: Optional[int], fields: Iterable[str]) -> None:
    fields = list(fields)
    for entry in entries:
        truncate_entry(entry, max_size, fields)
