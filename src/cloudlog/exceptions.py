"""
cloudlog exception hierarchy.

Transport and credential failures are not wrapped: errors raised by
google-api-core and google-auth reach the caller unchanged. The classes here
cover failures detected locally, before anything is sent.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CloudLogError(Exception):
    """Root of all errors raised by cloudlog itself."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class CircularReferenceError(CloudLogError):
    """A structured payload references itself and `remove_circular` is off."""

    def __init__(self, *, path: str) -> None:
        super().__init__(
            f"Payload contains a circular reference at '{path}'. "
            "Enable remove_circular to replace it with '[Circular]'.",
            code="CIRCULAR_REFERENCE",
            details={"path": path},
        )


class InvalidLogNameError(CloudLogError):
    """Log name is empty."""

    def __init__(self, name: Any) -> None:
        super().__init__(
            f"Invalid log name: {name!r}",
            code="INVALID_LOG_NAME",
            details={"name": name},
        )
