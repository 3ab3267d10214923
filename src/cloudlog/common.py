"""
Helpers shared by the client and its log handles.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Generic, Optional, TypeVar
from urllib.parse import quote, unquote

T = TypeVar("T")

# Stand-in until the project id has been resolved
PROJECT_ID_PLACEHOLDER = "{{projectId}}"


def format_log_name(project_id: str, name: str) -> str:
    """Build `projects/{project_id}/logs/{name}`, URL-encoding the name once.

    An already-formatted name has its prefix stripped first, and a name that is
    already encoded is not encoded again.
    """
    path = f"projects/{project_id}/logs/"
    name = name.replace(path, "")
    if unquote(name) == name:
        name = quote(name, safe="!~*'()")
    return path + name


_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-.]+")


def snake_case(key: str) -> str:
    """`projectId` -> `project_id`, `Zone Name` -> `zone_name`."""
    key = _CAMEL_BOUNDARY.sub(r"\1_\2", key.strip())
    return _SEPARATORS.sub("_", key).lower()


def snakecase_keys(labels: dict[str, Any]) -> dict[str, Any]:
    """Rename the keys of `labels` to snake_case in place and return it."""
    for key in list(labels):
        replacement = snake_case(key)
        if replacement != key:
            labels[replacement] = labels.pop(key)
    return labels


def arrify(value: Any) -> list[Any]:
    """Wrap a single value in a list; lists and tuples become lists; None becomes []."""
    if value is None:
        return []
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)
    return [value]


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


class OnceCell(Generic[T]):
    """Async lazy cell: the first `get_or_init` runs the factory, later calls reuse the value.

    Concurrent first callers wait on one lock, so the factory runs at most once
    unless it raises, in which case the next caller tries again.
    """

    def __init__(self, value: Optional[T] = None) -> None:
        self._value = value
        self._lock: Optional[asyncio.Lock] = None

    @property
    def value(self) -> Optional[T]:
        return self._value

    def is_set(self) -> bool:
        return self._value is not None

    def set(self, value: T) -> None:
        self._value = value

    async def get_or_init(self, factory: Callable[[], Awaitable[T]]) -> T:
        if self._value is not None:
            return self._value
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._value is None:
                self._value = await factory()
        return self._value


async def settle(operation: Awaitable[T], callback: Optional[Callable[[Optional[BaseException], Any], None]]) -> Optional[T]:
    """Await `operation` and report its outcome.

    Without a callback the result is returned and errors propagate. With one,
    `callback(err, result)` is invoked instead and errors are not re-raised.
    """
    if callback is None:
        return await operation
    try:
        result = await operation
    except Exception as exc:
        callback(exc, None)
        return None
    callback(None, result)
    return result
