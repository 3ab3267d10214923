"""
Diagnostics logging for cloudlog.

Structured logging with multiple sink support:
- stdio: Standard error (console/json format)
- file: Local file rotation with JSON

Design Pattern: Strategy Pattern for sink abstraction.
Library: structlog + orjson for JSON serialization.
"""

from .core import configure_logging, disable_logging, get_logger

__all__ = ["configure_logging", "disable_logging", "get_logger"]
