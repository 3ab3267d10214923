"""GAPIC transport for the logging RPCs.

Implements `cloudlog.service.LoggingService` on top of
`google.cloud.logging_v2`'s async client. Requests arrive as wire dicts with
Struct-form `jsonPayload`; they are converted to their JSON mapping and parsed
into protobuf messages. Listed and tailed entries go back out as JSON-form
dicts.

Call options understood:
    max_retries: retry count for retryable API errors (exponential backoff)
    timeout: per-attempt timeout in seconds
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Optional

from google.api_core import exceptions as api_exceptions
from google.cloud.logging_v2.services.logging_service_v2 import LoggingServiceV2AsyncClient
from google.cloud.logging_v2.types import (
    DeleteLogRequest,
    ListLogEntriesRequest,
    LogEntry,
    TailLogEntriesRequest,
    TailLogEntriesResponse,
    WriteLogEntriesRequest,
)
from google.protobuf import json_format

from cloudlog.config import settings
from cloudlog.entry import struct_to_obj
from cloudlog.logging import get_logger
from cloudlog.types import CallOptions, ListEntriesPage

logger = get_logger("cloudlog.adapters.gapic")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    api_exceptions.ServiceUnavailable,
    api_exceptions.DeadlineExceeded,
    api_exceptions.InternalServerError,
    api_exceptions.ResourceExhausted,
)


# =============================================================================
# Wire <-> JSON mapping
# =============================================================================


def timestamp_to_rfc3339(value: Mapping) -> str:
    seconds = int(value.get("seconds", 0))
    nanos = int(value.get("nanos", 0))
    base = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{base}.{nanos:09d}Z"


def duration_to_json(value: Mapping) -> str:
    return f"{int(value.get('seconds', 0))}.{int(value.get('nanos', 0)):09d}s"


def entry_to_json_mapping(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a serialized wire entry into the LogEntry JSON mapping protobuf parses."""
    out = dict(entry)
    payload = out.get("jsonPayload")
    if isinstance(payload, Mapping) and "fields" in payload:
        out["jsonPayload"] = struct_to_obj(payload)
    timestamp = out.get("timestamp")
    if isinstance(timestamp, Mapping):
        out["timestamp"] = timestamp_to_rfc3339(timestamp)
    http_request = out.get("httpRequest")
    if isinstance(http_request, Mapping) and isinstance(http_request.get("latency"), Mapping):
        out["httpRequest"] = {**http_request, "latency": duration_to_json(http_request["latency"])}
    return out


def write_request_to_json_mapping(request: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(request)
    out["entries"] = [entry_to_json_mapping(e) for e in request.get("entries", [])]
    return out


def _parse(message_cls: Any, mapping: Mapping[str, Any]) -> Any:
    pb = json_format.ParseDict(dict(mapping), message_cls.pb()(), ignore_unknown_fields=True)
    return message_cls.wrap(pb)


def _to_dict(message_cls: Any, message: Any) -> Dict[str, Any]:
    return json_format.MessageToDict(message_cls.pb(message))


# =============================================================================
# Retry
# =============================================================================


async def _call_with_retry(
    call: Callable[[], Any],
    *,
    max_retries: int,
    base_backoff: float,
    context: str = "",
) -> Any:
    """Run `call`, retrying retryable API errors up to `max_retries` times with exponential backoff."""
    attempt = 0
    while True:
        try:
            return await call()
        except RETRYABLE_ERRORS as exc:
            if attempt >= max_retries:
                raise
            attempt += 1
            logger.warning(
                "rpc_retry",
                attempt=attempt,
                max_retries=max_retries,
                error=str(exc),
                context=context,
            )
            await asyncio.sleep(base_backoff * (2 ** (attempt - 1)))


# =============================================================================
# Service
# =============================================================================


class GapicLoggingService:
    """`LoggingService` backed by `LoggingServiceV2AsyncClient`, created lazily."""

    def __init__(
        self,
        client: Optional[LoggingServiceV2AsyncClient] = None,
        *,
        credentials: Any = None,
        base_backoff: Optional[float] = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._base_backoff = base_backoff if base_backoff is not None else settings.client.retry_backoff

    def _ensure_client(self) -> LoggingServiceV2AsyncClient:
        if self._client is None:
            self._client = LoggingServiceV2AsyncClient(credentials=self._credentials)
            logger.debug("gapic_client_initialized")
        return self._client

    async def _invoke(self, method: Callable[..., Any], call_options: CallOptions, context: str, **kwargs: Any) -> Any:
        options = dict(call_options or {})
        max_retries = options.get("max_retries")
        if options.get("timeout") is not None:
            kwargs["timeout"] = options["timeout"]
        if max_retries is None:
            return await method(**kwargs)
        # Our loop owns retrying; turn off the method's built-in retry
        kwargs["retry"] = None
        return await _call_with_retry(
            lambda: method(**kwargs),
            max_retries=int(max_retries),
            base_backoff=self._base_backoff,
            context=context,
        )

    async def write_log_entries(self, request: Dict[str, Any], call_options: CallOptions) -> Any:
        client = self._ensure_client()
        pb_request = _parse(WriteLogEntriesRequest, write_request_to_json_mapping(request))
        return await self._invoke(client.write_log_entries, call_options, "write_log_entries", request=pb_request)

    async def delete_log(self, request: Dict[str, Any], call_options: CallOptions) -> Any:
        client = self._ensure_client()
        pb_request = _parse(DeleteLogRequest, request)
        return await self._invoke(client.delete_log, call_options, "delete_log", request=pb_request)

    async def list_entries(self, request: Dict[str, Any], call_options: CallOptions) -> ListEntriesPage:
        client = self._ensure_client()
        pb_request = _parse(ListLogEntriesRequest, request)
        pager = await self._invoke(client.list_log_entries, call_options, "list_entries", request=pb_request)
        # The pager proxies attribute access to its first response
        return ListEntriesPage(
            entries=[_to_dict(LogEntry, entry) for entry in pager.entries],
            next_page_token=pager.next_page_token or None,
        )

    async def tail_log_entries(
        self, request: Dict[str, Any], call_options: CallOptions
    ) -> AsyncIterator[Dict[str, Any]]:
        client = self._ensure_client()
        pb_request = _parse(TailLogEntriesRequest, request)

        async def requests() -> AsyncIterator[TailLogEntriesRequest]:
            yield pb_request

        kwargs: Dict[str, Any] = {"requests": requests()}
        if (call_options or {}).get("timeout") is not None:
            kwargs["timeout"] = call_options["timeout"]
        stream = await client.tail_log_entries(**kwargs)
        async for response in stream:
            yield _to_dict(TailLogEntriesResponse, response)


__all__ = [
    "GapicLoggingService",
    "entry_to_json_mapping",
    "write_request_to_json_mapping",
]
