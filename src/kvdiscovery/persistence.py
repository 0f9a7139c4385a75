"""Mapping between the in-memory index and the key-value store.

Key layout:

    //typeIndex     type name → sorted list of binding IDs
    //queryIndex    query → sorted list of binding IDs
    //nextId        next binding ID to allocate
    <id>            binding record ``[query, type_name, parameter_values, language]``
    <type name>     serialised BindingType

Type names start with a letter, so they never collide with the other keys.
Every ``persist_*`` call writes through immediately; nothing is batched and
nothing is rolled back if a write fails part way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from kvdiscovery.bindings import LazyBinding
from kvdiscovery.errors import NoSuchTypeError, StorageConsistencyError
from kvdiscovery.index import BindingIndex
from kvdiscovery.models.records import BindingRecord
from kvdiscovery.models.types import BindingType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kvdiscovery.bindings import ResourceBinding
    from kvdiscovery.protocols import KeyValueStore, ResourceRepository
    from kvdiscovery.registry import TypeRegistry

log = structlog.get_logger()

TYPE_INDEX_KEY = "//typeIndex"
QUERY_INDEX_KEY = "//queryIndex"
NEXT_ID_KEY = "//nextId"


def binding_key(binding_id: int) -> str:
    return str(binding_id)


class StoreAdapter:
    def __init__(self, store: KeyValueStore, index: BindingIndex, repo: ResourceRepository) -> None:
        self.store = store
        self.index = index
        self.repo = repo

    @classmethod
    async def load(cls, store: KeyValueStore, repo: ResourceRepository) -> StoreAdapter:
        """Build the index from the snapshots in ``store`` (empty if absent)."""
        type_snapshot = await store.get(TYPE_INDEX_KEY, {})
        query_snapshot = await store.get(QUERY_INDEX_KEY, {})
        next_id = await store.get(NEXT_ID_KEY, 1)
        index = BindingIndex.from_snapshots(type_snapshot, query_snapshot, next_id)
        log.debug(
            "index_loaded",
            types=len(index.type_index),
            queries=len(index.query_index),
            next_id=index.high_water,
        )
        return cls(store, index, repo)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_binding(self, binding_id: int, types: TypeRegistry) -> LazyBinding:
        """Rebuild a binding from its stored record.

        The index pointed at ``binding_id``, so a missing record means the
        store and the index disagree: that is fatal, not a cache miss.
        """
        row = await self.store.get(binding_key(binding_id))
        if not row:
            raise StorageConsistencyError.for_binding_id(binding_id)

        record = BindingRecord.from_row(row)
        binding = LazyBinding(
            query=record.query,
            type=await types.get(record.type_name),
            parameter_values=record.parameter_values,
            language=record.language,
            repo=self.repo,
        )
        log.debug("binding_loaded", binding_id=binding_id, type_name=record.type_name)
        return binding

    async def load_type(self, type_name: str) -> BindingType:
        data = await self.store.get(type_name)
        if not data:
            raise NoSuchTypeError.for_type_name(type_name)
        try:
            binding_type = BindingType.model_validate(data)
        except ValidationError as exc:
            raise StorageConsistencyError(
                f'Stored data for type "{type_name}" is invalid: {exc}'
            ) from exc
        log.debug("type_loaded", type_name=type_name)
        return binding_type

    async def binding_exists(self, binding_id: int) -> bool:
        return await self.store.exists(binding_key(binding_id))

    async def stored_next_id(self) -> int:
        return int(await self.store.get(NEXT_ID_KEY, 1))

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    async def persist_insert(self, binding_id: int, binding: ResourceBinding) -> None:
        await self.store.set(binding_key(binding_id), binding.to_record().to_row())
        await self.store.set(NEXT_ID_KEY, self.index.high_water)
        await self._write_snapshots()

    async def persist_remove(self, binding_ids: Iterable[int]) -> None:
        for binding_id in binding_ids:
            await self.store.remove(binding_key(binding_id))
        await self._write_snapshots()

    async def persist_type_define(self, binding_type: BindingType) -> None:
        await self.store.set(TYPE_INDEX_KEY, self.index.type_snapshot())
        await self.store.set(binding_type.name, binding_type.model_dump(mode="json"))

    async def persist_type_undefine(self, type_name: str) -> None:
        await self.store.set(TYPE_INDEX_KEY, self.index.type_snapshot())
        await self.store.remove(type_name)

    async def persist_clear(self) -> None:
        await self.store.clear()

    async def _write_snapshots(self) -> None:
        await self.store.set(TYPE_INDEX_KEY, self.index.type_snapshot())
        await self.store.set(QUERY_INDEX_KEY, self.index.query_snapshot())
