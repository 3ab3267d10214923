"""Logging client: shared state and read operations for every `Log` it creates.

The client owns two resolve-once values shared by all of its log handles:
the project id and the detected monitored resource. Both are resolved lazily
on first use and never invalidated.
"""

from __future__ import annotations

import dataclasses
from typing import Any, AsyncIterator, Dict, List, Optional

from .common import PROJECT_ID_PLACEHOLDER, OnceCell, arrify, format_log_name, settle
from .config import settings
from .config.client import ClientSettings
from .entry import Entry
from .instrumentation import default_attacher
from .logging import get_logger
from .resource import EnvironmentResourceDetector, MonitoredResource
from .service import InstrumentationFn, LoggingService, ProjectIdResolver, ResourceDetector
from .types import (
    Callback,
    GetEntriesRequest,
    GetEntriesResponse,
    LogOptions,
    TailEntriesRequest,
    TailEntriesResponse,
)

logger = get_logger("cloudlog.client")

DEFAULT_ORDER_BY = "timestamp desc"


def _with_log_filter(filter_: Optional[str], log_name: str) -> str:
    clause = f'logName="{log_name}"'
    if filter_:
        return f"({filter_}) AND {clause}"
    return clause


class Logging:
    """Entry point: creates `Log` handles and reads entries across logs.

    Collaborators default to the Google implementations; pass fakes to test.

    Args:
        project_id: Explicit project id (else `settings.client.project_id`, else ADC)
        auth: Project id resolver
        service: Logging RPC transport
        resource_detector: Runtime monitored-resource detector
        detected_resource: Pre-seeded resource; skips detection entirely
        max_retries: Default transport retry count (else `settings.client.max_retries`)
        instrumentation: Instrumentation attacher (process-wide one by default)
        client_settings: Settings used for the defaults above
    """

    def __init__(
        self,
        *,
        project_id: Optional[str] = None,
        auth: Optional[ProjectIdResolver] = None,
        service: Optional[LoggingService] = None,
        resource_detector: Optional[ResourceDetector] = None,
        detected_resource: Optional[MonitoredResource] = None,
        max_retries: Optional[int] = None,
        instrumentation: Optional[InstrumentationFn] = None,
        client_settings: Optional[ClientSettings] = None,
    ) -> None:
        self.settings = client_settings or settings.client
        project_id = project_id or self.settings.project_id

        if auth is None:
            from .auth import GoogleAuthProjectIdResolver

            auth = GoogleAuthProjectIdResolver(project_id)
        self.auth = auth
        self._service = service
        self.resource_detector = resource_detector or EnvironmentResourceDetector()
        self.instrumentation: InstrumentationFn = instrumentation or default_attacher
        self.max_retries = max_retries if max_retries is not None else self.settings.max_retries

        self._project_id: OnceCell[str] = OnceCell(project_id)
        self._detected_resource: OnceCell[MonitoredResource] = OnceCell(detected_resource)

    # =========================================================================
    # Shared state
    # =========================================================================

    @property
    def project_id(self) -> str:
        """Resolved project id, or the placeholder until resolution has happened."""
        return self._project_id.value or PROJECT_ID_PLACEHOLDER

    @property
    def detected_resource(self) -> Optional[MonitoredResource]:
        return self._detected_resource.value

    @property
    def logging_service(self) -> LoggingService:
        if self._service is None:
            from .adapters.gapic import GapicLoggingService

            self._service = GapicLoggingService(credentials=getattr(self.auth, "credentials", None))
        return self._service

    async def set_project_id(self) -> str:
        """Resolve the project id once; later calls return the cached value."""
        return await self._project_id.get_or_init(self.auth.get_project_id)

    async def set_detected_resource(self) -> MonitoredResource:
        """Detect the monitored resource once per client; later calls return the cache."""

        async def detect() -> MonitoredResource:
            project_id = await self.set_project_id()
            resource = await self.resource_detector.detect(project_id)
            logger.info("resource_detected", resource_type=resource.get("type"), project_id=project_id)
            return resource

        return await self._detected_resource.get_or_init(detect)

    # =========================================================================
    # Factories
    # =========================================================================

    def log(self, name: str, options: Optional[LogOptions] = None, **overrides: Any) -> "Log":
        """Create a `Log` handle. Unset options come from `settings.client`."""
        from .log import Log

        if options is None:
            options = LogOptions.from_settings(self.settings, **overrides)
        elif overrides:
            options = options.model_copy(update=overrides)
        return Log(self, name, options)

    def entry(self, metadata: Optional[Dict[str, Any]] = None, data: Any = None) -> Entry:
        return Entry(metadata, data)

    # =========================================================================
    # Reads
    # =========================================================================

    async def _list_request(self, query: GetEntriesRequest) -> Dict[str, Any]:
        project_id = await self.set_project_id()
        filter_ = query.filter
        if query.log:
            filter_ = _with_log_filter(filter_, format_log_name(project_id, query.log))

        request: Dict[str, Any] = {
            "resourceNames": arrify(query.resource_names) or [f"projects/{project_id}"],
            "orderBy": query.order_by or DEFAULT_ORDER_BY,
        }
        if filter_:
            request["filter"] = filter_
        if query.page_size is not None:
            request["pageSize"] = query.page_size
        if query.page_token:
            request["pageToken"] = query.page_token
        return request

    async def _get_entries(self, query: GetEntriesRequest) -> GetEntriesResponse:
        request = await self._list_request(query)
        page = await self.logging_service.list_entries(request, dict(query.call_options or {}))
        entries = [Entry.from_api_response(e) for e in page.entries]
        if query.max_results is not None:
            entries = entries[: query.max_results]
        return GetEntriesResponse(entries=entries, next_page_token=page.next_page_token)

    async def get_entries(
        self, query: Optional[GetEntriesRequest] = None, *, callback: Optional[Callback] = None
    ) -> GetEntriesResponse:
        """Fetch one page of entries across the project (or `query.resource_names`)."""
        return await settle(self._get_entries(query or GetEntriesRequest()), callback)  # type: ignore[return-value]

    async def get_entries_stream(self, query: Optional[GetEntriesRequest] = None) -> AsyncIterator[Entry]:
        """Yield entries page after page until exhausted or `max_results` is reached."""
        query = query or GetEntriesRequest()
        remaining = query.max_results
        while True:
            page = await self._get_entries(dataclasses.replace(query, max_results=None))
            for entry in page.entries:
                if remaining is not None:
                    if remaining <= 0:
                        return
                    remaining -= 1
                yield entry
            if not page.next_page_token or (remaining is not None and remaining <= 0):
                return
            query = dataclasses.replace(query, page_token=page.next_page_token)

    async def tail_entries(self, query: Optional[TailEntriesRequest] = None) -> AsyncIterator[TailEntriesResponse]:
        """Yield live entry batches as the service streams them."""
        query = query or TailEntriesRequest()
        project_id = await self.set_project_id()
        filter_ = query.filter
        if query.log:
            filter_ = _with_log_filter(filter_, format_log_name(project_id, query.log))

        request: Dict[str, Any] = {
            "resourceNames": arrify(query.resource_names) or [f"projects/{project_id}"],
        }
        if filter_:
            request["filter"] = filter_
        if query.buffer_window is not None:
            request["bufferWindow"] = f"{query.buffer_window}s"

        async for response in self.logging_service.tail_log_entries(request, dict(query.call_options or {})):
            entries: List[Entry] = [Entry.from_api_response(e) for e in response.get("entries", [])]
            yield TailEntriesResponse(entries=entries, suppression_info=list(response.get("suppressionInfo", [])))
