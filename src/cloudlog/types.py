"""
Option, query and response types for the client and its log handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .config.client import ClientSettings
    from .entry import Entry

# callback(err, result): exactly one of the two is None
Callback = Callable[[Optional[BaseException], Any], None]

CallOptions = Dict[str, Any]


@dataclass(frozen=True)
class WriteOptions:
    """Per-call write configuration. `call_options` travels to the transport, not in the request."""

    dry_run: Optional[bool] = None
    partial_success: Optional[bool] = None
    labels: Optional[Dict[str, str]] = None
    resource: Optional[Dict[str, Any]] = None
    call_options: Optional[CallOptions] = None

    def request_fields(self) -> Dict[str, Any]:
        """Fields merged into the WriteLogEntries request (camelCase, unset omitted)."""
        fields: Dict[str, Any] = {}
        if self.dry_run is not None:
            fields["dryRun"] = self.dry_run
        if self.partial_success is not None:
            fields["partialSuccess"] = self.partial_success
        if self.labels is not None:
            fields["labels"] = dict(self.labels)
        return fields


@dataclass(frozen=True)
class GetEntriesRequest:
    filter: Optional[str] = None
    resource_names: Optional[List[str] | str] = None
    order_by: Optional[str] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None
    max_results: Optional[int] = None
    log: Optional[str] = None
    call_options: Optional[CallOptions] = None


@dataclass(frozen=True)
class TailEntriesRequest:
    filter: Optional[str] = None
    resource_names: Optional[List[str] | str] = None
    buffer_window: Optional[float] = None
    log: Optional[str] = None
    call_options: Optional[CallOptions] = None


@dataclass
class ListEntriesPage:
    """One page from the list RPC; entries are API LogEntry dicts in JSON form."""

    entries: List[Dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[str] = None


@dataclass
class GetEntriesResponse:
    entries: List["Entry"] = field(default_factory=list)
    next_page_token: Optional[str] = None


@dataclass
class TailEntriesResponse:
    entries: List["Entry"] = field(default_factory=list)
    suppression_info: List[Dict[str, Any]] = field(default_factory=list)


class LogOptions(BaseModel):
    """Configuration fixed for the lifetime of one `Log` handle."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    remove_circular: bool = False
    max_entry_size: Optional[int] = Field(default=None, gt=0)
    json_fields_to_truncate: Optional[List[Optional[str]]] = None
    default_write_delete_callback: Optional[Callback] = None

    @field_validator("json_fields_to_truncate")
    @classmethod
    def _drop_empty(cls, value: Optional[List[Optional[str]]]) -> Optional[List[Optional[str]]]:
        if value is None:
            return None
        return [path for path in value if path]

    @classmethod
    def from_settings(cls, client_settings: "ClientSettings", **overrides: Any) -> "LogOptions":
        values: Dict[str, Any] = {
            "remove_circular": client_settings.remove_circular,
            "max_entry_size": client_settings.max_entry_size,
            "json_fields_to_truncate": list(client_settings.json_fields_to_truncate) or None,
        }
        values.update(overrides)
        return cls(**values)
