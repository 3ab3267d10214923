"""
Diagnostic sinks.

JSON output follows the structured-logging shape the Cloud Logging agents
parse from stdout and files: `severity` instead of `level`, and the logger name
under `logging.googleapis.com/logger`.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Literal, TextIO

import orjson
from structlog.typing import EventDict

from .formatters import ConsoleFormatter

LogFormat = Literal["console", "json"]

LOGGER_NAME_KEY = "logging.googleapis.com/logger"


def orjson_dumps(v: Any, *, default: Any = str) -> str:
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


def to_structured_record(event_dict: EventDict) -> Dict[str, Any]:
    """Map a processed event onto agent-parsable keys."""
    record = dict(event_dict)
    record["severity"] = str(record.pop("level", "info")).upper()
    if "logger" in record:
        record[LOGGER_NAME_KEY] = record.pop("logger")
    return record


class BaseSink(ABC):
    """Destination for processed diagnostic events."""

    @abstractmethod
    def emit(self, event_dict: EventDict) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class StdioSink(BaseSink):
    """Writes to a text stream (stderr by default).

    Console format is colored only when the stream is a TTY.
    """

    def __init__(self, fmt: LogFormat = "console", stream: TextIO | None = None):
        self._fmt = fmt
        self._stream = stream or sys.stderr

    def _render(self, event_dict: EventDict) -> str:
        if self._fmt == "json":
            return orjson_dumps(to_structured_record(event_dict))
        isatty = getattr(self._stream, "isatty", None)
        return ConsoleFormatter.format(event_dict, use_color=bool(isatty and isatty()))

    def emit(self, event_dict: EventDict) -> None:
        print(self._render(event_dict), file=self._stream, flush=True)

    def close(self) -> None:
        # The stream belongs to the process
        return None


class FileSink(BaseSink):
    """JSON-lines file sink, rotated to `<name>.1.log` ... once `max_bytes` is exceeded."""

    def __init__(self, path: str | Path, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._file = self._open()

    @property
    def path(self) -> Path:
        return self._path

    def _open(self) -> TextIO:
        return open(self._path, "a", encoding="utf-8")

    def _backup_path(self, index: int) -> Path:
        return self._path.with_suffix(f".{index}.log")

    def emit(self, event_dict: EventDict) -> None:
        self._file.write(orjson_dumps(to_structured_record(event_dict)) + "\n")
        self._file.flush()
        if self._path.stat().st_size > self._max_bytes:
            self._rotate()

    def _rotate(self) -> None:
        self._file.close()
        # Oldest first so nothing is overwritten before it has moved
        for index in range(self._backup_count - 1, 0, -1):
            backup = self._backup_path(index)
            if backup.exists():
                backup.replace(self._backup_path(index + 1))
        self._path.replace(self._backup_path(1))
        self._file = self._open()

    def close(self) -> None:
        self._file.close()
