"""
Core logging configuration and initialization logic.

Library loggers carry their own processor chain (`structlog.wrap_logger`), so
the host application's structlog configuration is never touched. Until
`configure_logging` installs sinks, every event is dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from .sinks import BaseSink, FileSink, LogFormat, StdioSink

# =============================================================================
# Global State
# =============================================================================

_sinks: list[BaseSink] = []
_min_level: int = logging.WARNING

_METHOD_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


def get_sinks() -> list[BaseSink]:
    """Return the currently configured sinks."""
    return list(_sinks)


# =============================================================================
# Structlog Processors
# =============================================================================


def drop_unrouted(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drop events below the configured level, and all events while no sink is installed."""
    if not _sinks or _METHOD_LEVELS.get(method_name, logging.INFO) < _min_level:
        raise structlog.DropEvent
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add logger name to log event."""
    event_dict["logger"] = event_dict.pop("_name", "cloudlog")
    return event_dict


def rename_event_key(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' to 'message', the field Cloud Logging reads as the summary line."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def multi_sink_renderer(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
    """Render log to all configured sinks. Returns empty to suppress default output."""
    for sink in _sinks:
        try:
            sink.emit(event_dict)
        except Exception:
            # A broken sink must not break the caller's write path
            pass
    return ""


_PROCESSORS = [
    drop_unrouted,
    structlog.stdlib.add_log_level,
    add_timestamp,
    add_logger_name,
    rename_event_key,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    multi_sink_renderer,
]


class _NopFile:
    def write(self, s: str) -> None:
        pass

    def flush(self) -> None:
        pass


# Sinks do the output; the wrapped logger only receives the empty rendering
_NOP_LOGGER = structlog.PrintLogger(file=_NopFile())


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger bound to the library's own processor chain."""
    return structlog.wrap_logger(
        _NOP_LOGGER,
        processors=_PROCESSORS,
        wrapper_class=structlog.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=False,
        _name=name or "cloudlog",
    )


# =============================================================================
# Configuration Logic
# =============================================================================


def _close_sinks() -> None:
    for sink in _sinks:
        sink.close()
    _sinks.clear()


def _initialize_sinks(sinks: str, fmt: str, file_path: str) -> None:
    """Initialize the requested sinks, closing any previous ones."""
    _close_sinks()

    log_format: LogFormat = "json" if fmt.lower() == "json" else "console"

    for name in (s.strip().lower() for s in sinks.split(",")):
        if name == "stdio":
            _sinks.append(StdioSink(fmt=log_format))
        elif name == "file":
            _sinks.append(FileSink(file_path))


def configure_logging(
    *,
    level: str | None = None,
    sinks: str | None = None,
    fmt: str | None = None,
    file_path: str | None = None,
) -> None:
    """
    Turn on library diagnostics logging.

    Unset arguments fall back to `settings.logging` (CLOUDLOG_LOG_* variables).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        sinks: Comma-separated sink names (stdio, file)
        fmt: Output format for stdio sink (console, json)
        file_path: Path for file sink
    """
    global _min_level
    from cloudlog.config import settings

    _initialize_sinks(
        sinks or settings.log_sinks,
        fmt or settings.log_format,
        file_path or settings.log_file_path,
    )
    _min_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)


def disable_logging() -> None:
    """Close all sinks; events are dropped again until `configure_logging` is called."""
    global _min_level
    _close_sinks()
    _min_level = logging.WARNING
