"""
Console formatter for library diagnostics.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
from structlog.typing import EventDict

_ANSI_RESET = "\x1b[0m"
_ANSI_DIM = "\x1b[2m"

_SEVERITY_COLORS = {
    "DEBUG": "\x1b[36m",
    "INFO": "\x1b[32m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "CRITICAL": "\x1b[1;31m",
}


class ConsoleFormatter:
    """Renders `timestamp | LEVEL | logger | message key=value ...` lines.

    Timestamps are shown in UTC, the zone Cloud Logging reports entries in.
    Mapping and list values (resources, labels) are rendered as compact JSON.
    """

    RESERVED_KEYS = frozenset({"level", "message", "event", "logger", "timestamp", "_name"})
    TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
    LEVEL_WIDTH = 8
    LOGGER_WIDTH = 24
    SEPARATOR = " | "

    @staticmethod
    def _clip(text: str, width: int) -> str:
        # Keep the tail: logger names differ in their last segment
        if len(text) > width:
            text = "..." + text[3 - width :] if width > 3 else text[-width:]
        return text.rjust(width)

    @classmethod
    def _utc_timestamp(cls, raw: Any) -> str:
        moment = datetime.now(timezone.utc)
        if isinstance(raw, str) and raw:
            try:
                moment = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                pass
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).strftime(cls.TIMESTAMP_FORMAT)

    @staticmethod
    def _render_value(value: Any) -> str:
        if isinstance(value, (dict, list, tuple)):
            return orjson.dumps(value, default=str).decode()
        return str(value)

    @classmethod
    def format(cls, event_dict: EventDict, *, use_color: bool = True) -> str:
        level = str(event_dict.get("level", "info")).upper()
        dim, reset = (_ANSI_DIM, _ANSI_RESET) if use_color else ("", "")

        message = str(event_dict.get("message", event_dict.get("event", "")))
        pairs = " ".join(
            f"{key}={dim}{cls._render_value(value)}{reset}"
            for key, value in event_dict.items()
            if key not in cls.RESERVED_KEYS
        )
        if pairs:
            message = f"{message} {pairs}"

        level_column = cls._clip(level, cls.LEVEL_WIDTH)
        if use_color and level in _SEVERITY_COLORS:
            level_column = f"{_SEVERITY_COLORS[level]}{level_column}{_ANSI_RESET}"

        columns = (
            cls._utc_timestamp(event_dict.get("timestamp")),
            level_column,
            cls._clip(str(event_dict.get("logger", "cloudlog")), cls.LOGGER_WIDTH),
            message,
        )
        return cls.SEPARATOR.join(columns)
