"""
Severity levels and the tagger used by the per-severity write shortcuts.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any, List

from .common import arrify
from .entry import Entry


class Severity(str, Enum):
    """LogSeverity names accepted by the service, lowest to highest."""

    DEFAULT = "DEFAULT"
    DEBUG = "DEBUG"
    INFO = "INFO"
    NOTICE = "NOTICE"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    ALERT = "ALERT"
    EMERGENCY = "EMERGENCY"


def assign_severity_to_entries(entries: Entry | List[Entry], severity: str | Severity) -> List[Entry]:
    """Return copies of `entries` with `metadata["severity"]` set.

    Accepts one entry or a sequence; the result always has one item per input
    entry. Input entries are left untouched.
    """
    level = severity.value if isinstance(severity, Severity) else severity
    tagged: List[Entry] = []
    for entry in arrify(entries):
        clone: Any = copy.copy(entry)
        clone.metadata = {**copy.deepcopy(entry.metadata), "severity": level}
        tagged.append(clone)
    return tagged
