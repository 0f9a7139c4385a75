"""Unit tests for kvdiscovery.persistence."""

from __future__ import annotations

import pytest

from kvdiscovery.bindings import LazyBinding
from kvdiscovery.errors import NoSuchTypeError, StorageConsistencyError
from kvdiscovery.models.types import BindingType
from kvdiscovery.persistence import (
    NEXT_ID_KEY,
    QUERY_INDEX_KEY,
    TYPE_INDEX_KEY,
    StoreAdapter,
)
from kvdiscovery.registry import TypeRegistry
from kvdiscovery.store import MemoryStore


@pytest.fixture()
async def adapter(store: MemoryStore, repo) -> StoreAdapter:
    return await StoreAdapter.load(store, repo)


class TestLoad:
    async def test_empty_store_gives_empty_index(self, adapter: StoreAdapter) -> None:
        assert adapter.index.type_index == {}
        assert adapter.index.query_index == {}
        assert adapter.index.high_water == 1

    async def test_reads_snapshots(self, store: MemoryStore, repo) -> None:
        await store.set(TYPE_INDEX_KEY, {"style": [1, 3], "script": []})
        await store.set(QUERY_INDEX_KEY, {"/a.css": [1], "/b.css": [3]})
        await store.set(NEXT_ID_KEY, 4)

        adapter = await StoreAdapter.load(store, repo)

        assert adapter.index.type_index == {"style": {1, 3}, "script": set()}
        assert adapter.index.query_index == {"/a.css": {1}, "/b.css": {3}}
        assert adapter.index.high_water == 4


class TestWrites:
    async def test_persist_insert_writes_record_counter_and_snapshots(
        self, adapter: StoreAdapter, store: MemoryStore, thumbnail_type: BindingType, repo
    ) -> None:
        binding = LazyBinding(
            query="/img/*.png",
            type=thumbnail_type,
            parameter_values={"format": "png"},
            repo=repo,
        )
        adapter.index.add_type("thumbnail")
        binding_id = adapter.index.next_id()
        adapter.index.insert(binding_id, binding)

        await adapter.persist_insert(binding_id, binding)

        assert await store.get("1") == ["/img/*.png", "thumbnail", {"format": "png"}, "glob"]
        assert await store.get(NEXT_ID_KEY) == 2
        assert await store.get(TYPE_INDEX_KEY) == {"thumbnail": [1]}
        assert await store.get(QUERY_INDEX_KEY) == {"/img/*.png": [1]}

    async def test_persist_remove_deletes_records(
        self, adapter: StoreAdapter, store: MemoryStore
    ) -> None:
        await store.set("1", ["/a", "t", {}, "glob"])
        await store.set("2", ["/b", "t", {}, "glob"])
        adapter.index.add_type("t")

        await adapter.persist_remove([1, 2])

        assert not await store.exists("1")
        assert not await store.exists("2")
        assert await store.get(TYPE_INDEX_KEY) == {"t": []}
        assert await store.get(QUERY_INDEX_KEY) == {}

    async def test_type_define_and_undefine(
        self, adapter: StoreAdapter, store: MemoryStore, thumbnail_type: BindingType
    ) -> None:
        adapter.index.add_type("thumbnail")
        await adapter.persist_type_define(thumbnail_type)
        assert await store.get("thumbnail") == thumbnail_type.model_dump(mode="json")
        assert await store.get(TYPE_INDEX_KEY) == {"thumbnail": []}

        adapter.index.remove_type("thumbnail")
        await adapter.persist_type_undefine("thumbnail")
        assert not await store.exists("thumbnail")
        assert await store.get(TYPE_INDEX_KEY) == {}


class TestLoading:
    async def test_load_type(
        self, adapter: StoreAdapter, store: MemoryStore, thumbnail_type: BindingType
    ) -> None:
        await store.set("thumbnail", thumbnail_type.model_dump(mode="json"))
        assert await adapter.load_type("thumbnail") == thumbnail_type

    async def test_load_missing_type_raises(self, adapter: StoreAdapter) -> None:
        with pytest.raises(NoSuchTypeError):
            await adapter.load_type("thumbnail")

    async def test_load_corrupt_type_raises(self, adapter: StoreAdapter, store: MemoryStore) -> None:
        await store.set("thumbnail", {"name": "9bad"})
        with pytest.raises(StorageConsistencyError):
            await adapter.load_type("thumbnail")

    async def test_load_binding_rebuilds_lazy_binding(
        self, adapter: StoreAdapter, store: MemoryStore, thumbnail_type: BindingType, repo
    ) -> None:
        await store.set("thumbnail", thumbnail_type.model_dump(mode="json"))
        await store.set("5", ["/img/*.png", "thumbnail", {"format": "png"}, "xpath"])
        adapter.index.add_type("thumbnail")
        types = TypeRegistry(adapter.index, adapter)

        binding = await adapter.load_binding(5, types)

        assert isinstance(binding, LazyBinding)
        assert binding.query == "/img/*.png"
        assert binding.type == thumbnail_type
        assert dict(binding.parameter_values) == {"format": "png"}
        assert binding.language == "xpath"
        assert binding.repo is repo

    async def test_load_missing_binding_is_consistency_error(self, adapter: StoreAdapter) -> None:
        types = TypeRegistry(adapter.index, adapter)
        with pytest.raises(StorageConsistencyError) as exc_info:
            await adapter.load_binding(9, types)
        assert exc_info.value.recoverable is False
        assert "binding with ID 9" in exc_info.value.message
