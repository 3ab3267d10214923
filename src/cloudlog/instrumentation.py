"""
Instrumentation info attached to the first write of a process.

The service aggregates library usage from a diagnostic entry whose payload is
`{"logging.googleapis.com/diagnostic": {"instrumentation_source": [...]}}`.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Dict, List, Tuple

from .common import arrify
from .entry import Entry
from .logging import get_logger

logger = get_logger("cloudlog.instrumentation")

DIAGNOSTIC_INFO_KEY = "logging.googleapis.com/diagnostic"
INSTRUMENTATION_SOURCE_KEY = "instrumentation_source"
LIBRARY_NAME_PREFIX = "python"
DEFAULT_LIBRARY_VERSION = "unknown"
MAX_DIAGNOSTIC_VALUE_LENGTH = 14
MAX_INSTRUMENTATION_COUNT = 3


def library_version() -> str:
    try:
        return version("cloudlog")
    except PackageNotFoundError:
        return DEFAULT_LIBRARY_VERSION


def truncate_value(value: str, max_length: int = MAX_DIAGNOSTIC_VALUE_LENGTH) -> str:
    if len(value) > max_length:
        return value[:max_length] + "*"
    return value


def _library_info(name: str = LIBRARY_NAME_PREFIX, lib_version: str | None = None) -> Dict[str, str]:
    return {
        "name": truncate_value(name),
        "version": truncate_value(lib_version or library_version()),
    }


def validate_and_update_instrumentation(infos: Any) -> List[Dict[str, str]]:
    """Our own info first, then valid foreign `python*` infos, deduplicated, at most 3."""
    final = [_library_info()]
    for info in arrify(infos):
        if len(final) >= MAX_INSTRUMENTATION_COUNT:
            break
        if not isinstance(info, Mapping):
            continue
        name = info.get("name")
        if not isinstance(name, str) or not name.startswith(LIBRARY_NAME_PREFIX):
            continue
        candidate = _library_info(name, str(info.get("version") or DEFAULT_LIBRARY_VERSION))
        if candidate not in final:
            final.append(candidate)
    return final


def create_diagnostic_entry(name: str = LIBRARY_NAME_PREFIX, lib_version: str | None = None) -> Entry:
    return Entry(
        {"severity": "INFO"},
        {DIAGNOSTIC_INFO_KEY: {INSTRUMENTATION_SOURCE_KEY: [_library_info(name, lib_version)]}},
    )


def _diagnostic_payload(entry: Any) -> Any:
    data = entry.data if isinstance(entry, Entry) else entry
    if isinstance(data, Mapping):
        diagnostic = data.get(DIAGNOSTIC_INFO_KEY)
        if isinstance(diagnostic, dict) and INSTRUMENTATION_SOURCE_KEY in diagnostic:
            return diagnostic
    return None


def _with_validated_sources(entry: Any, diagnostic: Mapping) -> Any:
    """Copy of `entry` whose diagnostic payload carries the validated source list."""
    sources = validate_and_update_instrumentation(diagnostic[INSTRUMENTATION_SOURCE_KEY])
    payload = entry.data if isinstance(entry, Entry) else entry
    payload = {**payload, DIAGNOSTIC_INFO_KEY: {**diagnostic, INSTRUMENTATION_SOURCE_KEY: sources}}
    if isinstance(entry, Entry):
        clone = copy.copy(entry)
        clone.data = payload
        return clone
    return payload


class InstrumentationAttacher:
    """Adds the diagnostic entry to the first batch it sees.

    Callable as `attacher(entries) -> (entries, added)`; `added` is True when
    the batch carries instrumentation info this call produced or rewrote.
    """

    def __init__(self) -> None:
        self._written = False

    @property
    def written(self) -> bool:
        return self._written

    def reset(self) -> None:
        self._written = False

    def __call__(self, entries: Any) -> Tuple[List[Any], bool]:
        result: List[Any] = []
        added = False
        for entry in arrify(entries):
            diagnostic = _diagnostic_payload(entry)
            if diagnostic is not None:
                entry = _with_validated_sources(entry, diagnostic)
                added = True
                self._written = True
            result.append(entry)

        if not self._written:
            result.append(create_diagnostic_entry())
            self._written = True
            added = True
            logger.debug("instrumentation_attached", library=LIBRARY_NAME_PREFIX, version=library_version())
        return result, added


# Shared by every client in the process unless one is given its own
default_attacher = InstrumentationAttacher()
