"""Protocols for the collaborators the discovery consumes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class Resource(Protocol):
    @property
    def path(self) -> str: ...


class ResourceRepository(Protocol):
    """Resolves a query into the resources it selects."""

    async def find(self, query: str, language: str = "glob") -> Sequence[Resource]: ...


class KeyValueStore(Protocol):
    """String-keyed store of JSON-compatible values.

    Keys starting with ``//``, decimal integer keys and type names are
    reserved by the discovery.
    """

    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def exists(self, key: str) -> bool: ...

    async def clear(self) -> None: ...
