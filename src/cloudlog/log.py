"""Log handle: write, delete and read the entries of one named log.

Write pipeline, strictly in this order per call:

    resolve project id -> log name -> monitored resource
    -> normalize entries -> attach instrumentation info
    -> serialize -> truncate -> build request -> RPC

Every async operation has a single core coroutine; passing `callback=`
switches it from return/raise to `callback(err, result)` (see `settle`).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional, Sequence

from .common import arrify, format_log_name, settle
from .entry import Entry
from .exceptions import InvalidLogNameError
from .logging import get_logger
from .resource import MonitoredResource, normalize_resource
from .severity import Severity, assign_severity_to_entries
from .truncation import build_truncation_fields, truncate_entries
from .types import (
    Callback,
    CallOptions,
    GetEntriesRequest,
    GetEntriesResponse,
    LogOptions,
    TailEntriesRequest,
    TailEntriesResponse,
    WriteOptions,
)

if TYPE_CHECKING:
    from .client import Logging

logger = get_logger("cloudlog.log")

EntryInput = Any  # Entry, a raw payload/metadata value, or a sequence of those


class Log:
    """A named log within the client's project.

    Args:
        logging: Parent client; supplies project id, resource cache and transport
        name: Log name, plain (`syslog`) or fully formatted
        options: Handle configuration (`LogOptions`)
    """

    def __init__(self, logging: "Logging", name: str, options: Optional[LogOptions] = None) -> None:
        if not name:
            raise InvalidLogNameError(name)
        options = options or LogOptions()
        self.logging = logging
        self.formatted_name_ = format_log_name(logging.project_id, name)
        self.name = self.formatted_name_.split("/")[-1]
        self.remove_circular_ = options.remove_circular
        self.max_entry_size = options.max_entry_size
        self.json_fields_to_truncate = build_truncation_fields(options.json_fields_to_truncate)
        self.default_write_delete_callback = options.default_write_delete_callback

    def __repr__(self) -> str:
        return f"Log(name={self.name!r}, formatted_name={self.formatted_name_!r})"

    def _refresh_name(self, project_id: str) -> str:
        self.formatted_name_ = format_log_name(project_id, self.name)
        return self.formatted_name_

    def _write_delete_callback(self, callback: Optional[Callback]) -> Optional[Callback]:
        return callback or self.default_write_delete_callback

    # =========================================================================
    # Entries
    # =========================================================================

    def entry(self, metadata_or_data: Any = None, data: Any = None) -> Entry:
        """Build an Entry from `(metadata)`, `(data)` or `(metadata, data)`.

        With a single argument, a mapping owning an `httpRequest` key is taken
        as metadata (with an empty structured payload); anything else is the
        payload. A payload that happens to carry `httpRequest` is therefore
        read as metadata.
        """
        if data is None and isinstance(metadata_or_data, Mapping) and "httpRequest" in metadata_or_data:
            metadata = dict(metadata_or_data)
            data = {}
        elif data is None:
            data = metadata_or_data
            metadata = {}
        else:
            metadata = dict(metadata_or_data or {})
        return self.logging.entry(metadata, data)

    def _normalize(self, entries: EntryInput) -> List[Entry]:
        return [e if isinstance(e, Entry) else self.entry(e) for e in arrify(entries)]

    def _decorate_entries(self, entries: Sequence[Entry], project_id: str) -> List[Dict[str, Any]]:
        # Each call gets its own serialized copies; truncation mutates these only
        return [entry.to_json(remove_circular=self.remove_circular_, project_id=project_id) for entry in entries]

    def truncate_entries(self, entries: List[Dict[str, Any]]) -> None:
        """Shrink serialized entries in place to fit `max_entry_size`."""
        truncate_entries(entries, self.max_entry_size, self.json_fields_to_truncate)

    async def _get_or_set_resource(self, options: WriteOptions) -> MonitoredResource:
        if options.resource:
            return normalize_resource(options.resource)
        return await self.logging.set_detected_resource()

    # =========================================================================
    # Write / Delete
    # =========================================================================

    async def _write(self, entry: EntryInput, options: WriteOptions) -> Any:
        project_id = await self.logging.set_project_id()
        log_name = self._refresh_name(project_id)
        resource = await self._get_or_set_resource(options)

        entries, info_added = self.logging.instrumentation(self._normalize(entry))
        if info_added:
            # Let the service drop an invalid entry instead of failing the batch
            options = dataclasses.replace(options, partial_success=True)

        decorated = self._decorate_entries(entries, project_id)
        self.truncate_entries(decorated)

        request: Dict[str, Any] = {
            **options.request_fields(),
            "logName": log_name,
            "entries": decorated,
            "resource": resource,
        }

        call_options: CallOptions = dict(options.call_options or {})
        if call_options.get("max_retries") is None and self.logging.max_retries:
            call_options["max_retries"] = self.logging.max_retries

        response = await self.logging.logging_service.write_log_entries(request, call_options)
        logger.debug("log_entries_written", log_name=log_name, count=len(decorated))
        return response

    async def write(
        self,
        entry: EntryInput,
        options: Optional[WriteOptions] = None,
        *,
        callback: Optional[Callback] = None,
    ) -> Any:
        """Write one entry or a batch.

        Non-Entry values are normalized through `entry()`. Returns the RPC
        response; errors from project id resolution or the transport
        propagate unless a callback (per call or the log's default) is set.
        """
        return await settle(self._write(entry, options or WriteOptions()), self._write_delete_callback(callback))

    async def _delete(self, call_options: Optional[CallOptions]) -> Any:
        project_id = await self.logging.set_project_id()
        log_name = self._refresh_name(project_id)
        response = await self.logging.logging_service.delete_log({"logName": log_name}, dict(call_options or {}))
        logger.info("log_deleted", log_name=log_name)
        return response

    async def delete(self, call_options: Optional[CallOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        """Delete the log and all of its entries."""
        return await settle(self._delete(call_options), self._write_delete_callback(callback))

    # =========================================================================
    # Severity shortcuts
    # =========================================================================

    async def _write_with_severity(
        self,
        severity: Severity,
        entry: EntryInput,
        options: Optional[WriteOptions],
        callback: Optional[Callback],
    ) -> Any:
        return await self.write(
            assign_severity_to_entries(self._normalize(entry), severity), options, callback=callback
        )

    async def emergency(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.EMERGENCY, entry, options, callback)

    async def alert(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.ALERT, entry, options, callback)

    async def critical(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.CRITICAL, entry, options, callback)

    async def error(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.ERROR, entry, options, callback)

    async def warning(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.WARNING, entry, options, callback)

    async def notice(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.NOTICE, entry, options, callback)

    async def info(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.INFO, entry, options, callback)

    async def debug(self, entry: EntryInput, options: Optional[WriteOptions] = None, *, callback: Optional[Callback] = None) -> Any:
        return await self._write_with_severity(Severity.DEBUG, entry, options, callback)

    # =========================================================================
    # Reads
    # =========================================================================

    async def _get_entries(self, query: Optional[GetEntriesRequest]) -> GetEntriesResponse:
        query = query or GetEntriesRequest()
        project_id = await self.logging.set_project_id()
        log_name = self._refresh_name(project_id)
        filter_ = query.filter
        if filter_ and "logName=" not in filter_:
            filter_ = f'({filter_}) AND logName="{log_name}"'
        elif not filter_:
            filter_ = f'logName="{log_name}"'
        return await self.logging.get_entries(dataclasses.replace(query, filter=filter_))

    async def get_entries(
        self, query: Optional[GetEntriesRequest] = None, *, callback: Optional[Callback] = None
    ) -> GetEntriesResponse:
        """Fetch entries of this log; the filter is narrowed to this log's name."""
        return await settle(self._get_entries(query), callback)

    def get_entries_stream(self, query: Optional[GetEntriesRequest] = None) -> AsyncIterator[Entry]:
        query = query or GetEntriesRequest()
        if query.log is None:
            query = dataclasses.replace(query, log=self.name)
        return self.logging.get_entries_stream(query)

    def tail_entries(self, query: Optional[TailEntriesRequest] = None) -> AsyncIterator[TailEntriesResponse]:
        query = query or TailEntriesRequest()
        if query.log is None:
            query = dataclasses.replace(query, log=self.name)
        return self.logging.tail_entries(query)

    # =========================================================================
    # Static helpers
    # =========================================================================

    @staticmethod
    def assign_severity_to_entries_(entries: Entry | List[Entry], severity: str) -> List[Entry]:
        return assign_severity_to_entries(entries, severity)

    @staticmethod
    def format_name_(project_id: str, name: str) -> str:
        return format_log_name(project_id, name)
