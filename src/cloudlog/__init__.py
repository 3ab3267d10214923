"""
cloudlog: async client-side wrapper for writing and reading Cloud Logging entries.

Usage:
    from cloudlog import Logging

    logging_client = Logging()
    log = logging_client.log("syslog", max_entry_size=250_000)

    await log.write(log.entry({"user": "abc"}))
    await log.error("disk full")
    page = await log.get_entries()
"""

from .client import Logging
from .entry import Entry
from .exceptions import CircularReferenceError, CloudLogError, InvalidLogNameError
from .log import Log
from .severity import Severity
from .types import (
    GetEntriesRequest,
    GetEntriesResponse,
    LogOptions,
    TailEntriesRequest,
    TailEntriesResponse,
    WriteOptions,
)

__version__ = "0.1.0"

__all__ = [
    "Logging",
    "Log",
    "Entry",
    "Severity",
    "LogOptions",
    "WriteOptions",
    "GetEntriesRequest",
    "GetEntriesResponse",
    "TailEntriesRequest",
    "TailEntriesResponse",
    "CloudLogError",
    "CircularReferenceError",
    "InvalidLogNameError",
]
