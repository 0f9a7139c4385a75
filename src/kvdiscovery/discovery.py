"""Resource discovery backed by a key-value store.

``KeyValueStoreDiscovery`` is the public surface: it defines binding types,
inserts, finds and removes bindings, and writes every change through to the
injected ``KeyValueStore`` before returning. Types and bindings are loaded
from the store lazily and cached on the instance.

One writer at a time: there is no locking, and a failed store write leaves
the instance out of sync with the store.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog

from kvdiscovery.bindings import LazyBinding, ResourceBinding
from kvdiscovery.errors import InvalidArgumentError, NoSuchBindingError, NoSuchTypeError
from kvdiscovery.persistence import StoreAdapter
from kvdiscovery.registry import TypeRegistry
from kvdiscovery.store import open_store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from kvdiscovery.config import Settings
    from kvdiscovery.models.types import BindingType
    from kvdiscovery.protocols import KeyValueStore, ResourceRepository

log = structlog.get_logger()


def _check_query(query: Any) -> None:
    if not isinstance(query, str) or not query:
        raise InvalidArgumentError(f"The query must be a non-empty string. Got: {query!r}")


def _check_type_name(type_name: Any) -> None:
    if not isinstance(type_name, str) or not type_name:
        raise InvalidArgumentError(f"The type name must be a non-empty string. Got: {type_name!r}")


def _check_parameter_values(parameter_values: Any) -> None:
    if parameter_values is not None and not isinstance(parameter_values, Mapping):
        raise InvalidArgumentError(
            f"The parameter values must be a mapping. Got: {type(parameter_values).__name__}"
        )


class KeyValueStoreDiscovery:
    """A resource discovery that stores bindings and types in a key-value store."""

    def __init__(
        self,
        repo: ResourceRepository,
        adapter: StoreAdapter,
        *,
        default_language: str = "glob",
    ) -> None:
        self._repo = repo
        self._adapter = adapter
        self._index = adapter.index
        self._types = TypeRegistry(self._index, adapter)
        self.default_language = default_language

    @classmethod
    async def create(
        cls,
        repo: ResourceRepository,
        store: KeyValueStore,
        *,
        default_language: str = "glob",
    ) -> KeyValueStoreDiscovery:
        """Create a discovery over ``store``, loading its index snapshots."""
        adapter = await StoreAdapter.load(store, repo)
        return cls(repo, adapter, default_language=default_language)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    async def define_type(self, type_: str | BindingType) -> BindingType:
        return await self._types.define(type_)

    async def undefine_type(self, type_name: str) -> None:
        """Remove a type together with all bindings of that type."""
        _check_type_name(type_name)
        if not self._types.is_defined(type_name):
            raise NoSuchTypeError.for_type_name(type_name)

        await self.remove_bindings_by_type(type_name)
        await self._types.undefine(type_name)

    async def get_defined_type(self, type_name: str) -> BindingType:
        return await self._types.get(type_name)

    def is_type_defined(self, type_name: str) -> bool:
        return self._types.is_defined(type_name)

    async def get_defined_types(self) -> list[BindingType]:
        return await self._types.all_defined()

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    async def insert_binding(self, binding: ResourceBinding) -> int:
        """Index and persist ``binding``. Returns its newly assigned ID."""
        if not isinstance(binding, ResourceBinding):
            raise InvalidArgumentError(
                f"Expected a ResourceBinding. Got: {type(binding).__name__}"
            )
        if not self._types.is_defined(binding.type_name):
            raise NoSuchTypeError.for_type_name(binding.type_name)
        if binding.type != await self._types.get(binding.type_name):
            raise InvalidArgumentError(
                f'The binding\'s type differs from the defined type "{binding.type_name}".'
            )

        binding_id = self._index.next_id()
        self._index.insert(binding_id, binding)
        await self._adapter.persist_insert(binding_id, binding)
        log.info(
            "binding_inserted",
            binding_id=binding_id,
            query=binding.query,
            type_name=binding.type_name,
        )
        return binding_id

    async def bind(
        self,
        query: str,
        type_name: str,
        parameter_values: Mapping[str, Any] | None = None,
        language: str | None = None,
    ) -> int:
        """Bind ``query`` to a defined type, resolving resources lazily."""
        _check_query(query)
        _check_type_name(type_name)
        _check_parameter_values(parameter_values)
        if not self._types.is_defined(type_name):
            raise NoSuchTypeError.for_type_name(type_name)

        binding = LazyBinding(
            query=query,
            type=await self._types.get(type_name),
            parameter_values=parameter_values or {},
            language=language or self.default_language,
            repo=self._repo,
        )
        return await self.insert_binding(binding)

    async def get_binding(self, binding_id: int) -> ResourceBinding:
        if binding_id not in self._index.bindings:
            if not self._index.contains(binding_id):
                raise NoSuchBindingError.for_id(binding_id)
            await self._load_binding(binding_id)
        return self._index.bindings[binding_id]

    async def get_bindings(self) -> list[ResourceBinding]:
        """All stored bindings, in ID order."""
        next_id = await self._adapter.stored_next_id()
        bindings = []
        for binding_id in range(1, next_id):
            if binding_id in self._index.bindings:
                bindings.append(self._index.bindings[binding_id])
            elif await self._adapter.binding_exists(binding_id):
                bindings.append(await self._load_binding(binding_id))
        return bindings

    async def find_bindings(
        self,
        query: str | None = None,
        type_name: str | None = None,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> list[ResourceBinding]:
        ids = await self._select(query, type_name, parameter_values)
        return [await self.get_binding(binding_id) for binding_id in ids]

    async def find_by_type(
        self, type_name: str, parameter_values: Mapping[str, Any] | None = None
    ) -> list[ResourceBinding]:
        _check_type_name(type_name)
        return await self.find_bindings(type_name=type_name, parameter_values=parameter_values)

    async def find_by_query(
        self,
        query: str,
        type_name: str | None = None,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> list[ResourceBinding]:
        _check_query(query)
        return await self.find_bindings(query, type_name, parameter_values)

    async def has_bindings(
        self,
        query: str | None = None,
        type_name: str | None = None,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> bool:
        return bool(await self._select(query, type_name, parameter_values))

    async def remove_binding(self, binding_id: int) -> bool:
        """Remove one binding by ID. Returns False if no such binding exists."""
        if not self._index.contains(binding_id):
            return False
        # cached bindings are removed through their own index keys
        await self.get_binding(binding_id)
        self._index.remove_id(binding_id)
        await self._adapter.persist_remove([binding_id])
        log.info("bindings_removed", binding_ids=[binding_id])
        return True

    async def remove_bindings_by_query(
        self, query: str, parameter_values: Mapping[str, Any] | None = None
    ) -> list[int]:
        _check_query(query)
        return await self._remove_where(query, None, parameter_values)

    async def remove_bindings_by_type(
        self, type_name: str, parameter_values: Mapping[str, Any] | None = None
    ) -> list[int]:
        _check_type_name(type_name)
        return await self._remove_where(None, type_name, parameter_values)

    async def remove_bindings_by_query_and_type(
        self,
        query: str,
        type_name: str,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> list[int]:
        _check_query(query)
        _check_type_name(type_name)
        return await self._remove_where(query, type_name, parameter_values)

    async def clear(self) -> None:
        """Remove all types and bindings, here and in the store."""
        self._index.clear()
        self._types.clear()
        await self._adapter.persist_clear()
        log.info("discovery_cleared")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_binding(self, binding_id: int) -> ResourceBinding:
        binding = await self._adapter.load_binding(binding_id, self._types)
        self._index.bindings[binding_id] = binding
        return binding

    async def _load_candidates(
        self,
        query: str | None,
        type_name: str | None,
        parameter_values: Mapping[str, Any] | None,
        *,
        removing: bool = False,
    ) -> None:
        """Load the candidates' bindings when filtering or removal needs them."""
        _check_parameter_values(parameter_values)
        if not parameter_values and not removing:
            return
        for binding_id in self._index.candidates(query, type_name):
            if binding_id not in self._index.bindings:
                await self._load_binding(binding_id)

    async def _select(
        self,
        query: str | None,
        type_name: str | None,
        parameter_values: Mapping[str, Any] | None,
    ) -> list[int]:
        await self._load_candidates(query, type_name, parameter_values)
        return self._index.select(query, type_name, parameter_values)

    async def _remove_where(
        self,
        query: str | None,
        type_name: str | None,
        parameter_values: Mapping[str, Any] | None,
    ) -> list[int]:
        await self._load_candidates(query, type_name, parameter_values, removing=True)
        removed = self._index.remove_where(query, type_name, parameter_values)
        if not removed:
            return removed

        await self._adapter.persist_remove(removed)
        log.info(
            "bindings_removed",
            binding_ids=removed,
            query=query,
            type_name=type_name,
        )
        return removed


@asynccontextmanager
async def open_discovery(
    repo: ResourceRepository, settings: Settings
) -> AsyncIterator[KeyValueStoreDiscovery]:
    """Open the configured store and yield a discovery over it."""
    async with open_store(settings.store) as store:
        yield await KeyValueStoreDiscovery.create(
            repo, store, default_language=settings.discovery.default_language
        )
