"""Transport adapters for the logging RPCs."""

from .gapic import GapicLoggingService

__all__ = ["GapicLoggingService"]
