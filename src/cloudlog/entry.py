"""
Log entry model and its wire serialization.

An `Entry` holds user metadata (camelCase LogEntry fields) and a payload.
`Entry.to_json()` produces the wire dict the write RPC receives: mapping
payloads become `jsonPayload` in protobuf Struct form
(`{"fields": {"k": {"stringValue": "v"}}}`), everything else becomes
`textPayload`.
"""

from __future__ import annotations

import copy
import itertools
import os
import re
import time
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .common import is_mapping
from .exceptions import CircularReferenceError

CIRCULAR_PLACEHOLDER = "[Circular]"

_PAYLOAD_KEYS = ("jsonPayload", "textPayload", "protoPayload")

_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1

_RFC3339 = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<tz>[Zz]|[+-]\d{2}:\d{2})?$"
)


# =============================================================================
# Insert IDs
# =============================================================================

_insert_id_counter = itertools.count()
_insert_id_prefix = f"{time.time_ns():x}{os.getpid():x}"


def new_insert_id() -> str:
    """Process-unique, monotonically increasing insert id."""
    return f"{_insert_id_prefix}-{next(_insert_id_counter):012d}"


# =============================================================================
# Struct Encoding
# =============================================================================


def _encode_value(value: Any, *, remove_circular: bool, stringify: bool, ancestors: set[int], path: str) -> dict:
    if value is None:
        return {"nullValue": 0}
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, int) and not _INT64_MIN <= value <= _INT64_MAX:
        # numberValue is a double; orjson cannot encode wider ints
        return {"numberValue": float(value)}
    if isinstance(value, (int, float)):
        return {"numberValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (bytes, bytearray)):
        return {"stringValue": bytes(value).decode("utf-8", errors="replace")}

    if isinstance(value, (Mapping, list, tuple)):
        if id(value) in ancestors:
            if not remove_circular:
                raise CircularReferenceError(path=path)
            return {"stringValue": CIRCULAR_PLACEHOLDER}
        ancestors.add(id(value))
        try:
            if isinstance(value, Mapping):
                return {
                    "structValue": _encode_struct(
                        value, remove_circular=remove_circular, stringify=stringify, ancestors=ancestors, path=path
                    )
                }
            return {
                "listValue": {
                    "values": [
                        _encode_value(
                            item,
                            remove_circular=remove_circular,
                            stringify=stringify,
                            ancestors=ancestors,
                            path=f"{path}[{i}]",
                        )
                        for i, item in enumerate(value)
                    ]
                }
            }
        finally:
            ancestors.discard(id(value))

    if isinstance(value, (datetime, date)):
        return {"stringValue": value.isoformat()}
    if stringify:
        return {"stringValue": str(value)}
    raise TypeError(f"Value of type {type(value).__name__} not recognized.")


def _encode_struct(
    obj: Mapping, *, remove_circular: bool, stringify: bool, ancestors: set[int], path: str
) -> dict:
    return {
        "fields": {
            str(key): _encode_value(
                value,
                remove_circular=remove_circular,
                stringify=stringify,
                ancestors=ancestors,
                path=f"{path}.{key}" if path else str(key),
            )
            for key, value in obj.items()
        }
    }


def obj_to_struct(obj: Mapping, *, remove_circular: bool = False, stringify: bool = True) -> dict:
    """Encode a mapping as a protobuf Struct wire dict.

    Cycles raise `CircularReferenceError` unless `remove_circular` is set, in
    which case the repeated container becomes the string "[Circular]". Values
    with no Struct counterpart are stringified, or raise `TypeError` when
    `stringify` is off.
    """
    return _encode_struct(obj, remove_circular=remove_circular, stringify=stringify, ancestors={id(obj)}, path="")


def decode_value(value: Mapping) -> Any:
    if "structValue" in value:
        return struct_to_obj(value["structValue"])
    if "listValue" in value:
        return [decode_value(v) for v in value["listValue"].get("values", [])]
    if "nullValue" in value:
        return None
    for kind in ("stringValue", "numberValue", "boolValue"):
        if kind in value:
            return value[kind]
    return None


def struct_to_obj(struct: Mapping) -> Dict[str, Any]:
    """Inverse of `obj_to_struct`."""
    return {key: decode_value(value) for key, value in struct.get("fields", {}).items()}


# =============================================================================
# Timestamps
# =============================================================================


def datetime_to_timestamp(value: datetime) -> Dict[str, int]:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return {
        "seconds": int(value.replace(microsecond=0).timestamp()),
        "nanos": value.microsecond * 1000,
    }


def rfc3339_to_timestamp(value: str) -> Optional[Dict[str, int]]:
    """Parse an RFC 3339 string into `{seconds, nanos}`, keeping nanosecond digits."""
    match = _RFC3339.match(value.strip())
    if match is None:
        return None
    tz = match.group("tz") or "+00:00"
    if tz in ("Z", "z"):
        tz = "+00:00"
    base = datetime.fromisoformat(match.group("base").replace("t", "T").replace(" ", "T") + tz)
    frac = (match.group("frac") or "").ljust(9, "0")[:9]
    return {"seconds": int(base.timestamp()), "nanos": int(frac)}


def timestamp_to_datetime(value: Any) -> Any:
    """Best-effort conversion of an API timestamp back to an aware datetime."""
    if isinstance(value, str):
        parsed = rfc3339_to_timestamp(value)
        if parsed is None:
            return value
        value = parsed
    if is_mapping(value) and "seconds" in value:
        seconds = int(value.get("seconds", 0))
        micros = int(value.get("nanos", 0)) // 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(microseconds=micros)
    return value


def _duration(value: timedelta) -> Dict[str, int]:
    seconds = int(value.total_seconds())
    return {"seconds": seconds, "nanos": (value - timedelta(seconds=seconds)).microseconds * 1000}


# =============================================================================
# Entry
# =============================================================================


class Entry:
    """A log entry waiting to be written: metadata plus a text or structured payload."""

    def __init__(self, metadata: Optional[Mapping[str, Any]] = None, data: Any = None) -> None:
        self.metadata: Dict[str, Any] = dict(metadata or {})
        if self.metadata.get("timestamp") is None:
            self.metadata["timestamp"] = datetime.now(timezone.utc)
        if not self.metadata.get("insertId"):
            self.metadata["insertId"] = new_insert_id()
        self.data = data

    def __repr__(self) -> str:
        return f"Entry(metadata={self.metadata!r}, data={self.data!r})"

    def to_json(self, *, remove_circular: bool = False, project_id: str = "") -> Dict[str, Any]:
        """Serialize into a fresh wire dict owned by the caller.

        Exactly one of `jsonPayload` and `textPayload` is set on the result.
        """
        entry = copy.deepcopy(self.metadata)
        for key in _PAYLOAD_KEYS:
            entry.pop(key, None)

        data = self.data
        if data is None:
            entry["jsonPayload"] = {"fields": {}}
        elif is_mapping(data):
            entry["jsonPayload"] = obj_to_struct(data, remove_circular=remove_circular)
        elif isinstance(data, str):
            entry["textPayload"] = data
        elif isinstance(data, (bytes, bytearray)):
            entry["textPayload"] = bytes(data).decode("utf-8", errors="replace")
        else:
            entry["textPayload"] = str(data)

        timestamp = entry.get("timestamp")
        if isinstance(timestamp, datetime):
            entry["timestamp"] = datetime_to_timestamp(timestamp)
        elif isinstance(timestamp, str):
            entry["timestamp"] = rfc3339_to_timestamp(timestamp) or timestamp

        http_request = entry.get("httpRequest")
        if is_mapping(http_request) and isinstance(http_request.get("latency"), timedelta):
            http_request["latency"] = _duration(http_request["latency"])

        trace = entry.get("trace")
        if isinstance(trace, str) and trace and "/" not in trace and project_id:
            entry["trace"] = f"projects/{project_id}/traces/{trace}"

        return entry

    @classmethod
    def from_api_response(cls, entry: Mapping[str, Any]) -> "Entry":
        """Build an Entry from an API LogEntry in JSON form (as listed or tailed)."""
        metadata = dict(entry)
        data: Any = None
        for key in _PAYLOAD_KEYS:
            if key in metadata:
                value = metadata.pop(key)
                if data is None:
                    data = value
        if "timestamp" in metadata:
            metadata["timestamp"] = timestamp_to_datetime(metadata["timestamp"])
        return cls(metadata, data)
