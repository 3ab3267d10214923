"""
Collaborator interfaces.

The client reaches credentials, the logging RPCs and runtime detection only
through these protocols. `cloudlog.auth`, `cloudlog.adapters.gapic` and
`cloudlog.resource` hold the production implementations; tests use fakes.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Dict, List, Protocol, Tuple, runtime_checkable

from .resource import MonitoredResource
from .types import CallOptions, ListEntriesPage


@runtime_checkable
class ProjectIdResolver(Protocol):
    async def get_project_id(self) -> str:
        """Resolve the project id; credential errors propagate unchanged."""
        ...


@runtime_checkable
class LoggingService(Protocol):
    async def write_log_entries(self, request: Dict[str, Any], call_options: CallOptions) -> Any: ...

    async def delete_log(self, request: Dict[str, Any], call_options: CallOptions) -> Any: ...

    async def list_entries(self, request: Dict[str, Any], call_options: CallOptions) -> ListEntriesPage: ...

    def tail_log_entries(self, request: Dict[str, Any], call_options: CallOptions) -> AsyncIterator[Dict[str, Any]]:
        """Yield TailLogEntriesResponse dicts: `{"entries": [...], "suppressionInfo": [...]}`."""
        ...


@runtime_checkable
class ResourceDetector(Protocol):
    async def detect(self, project_id: str) -> MonitoredResource: ...


InstrumentationFn = Callable[[Any], Tuple[List[Any], bool]]
