"""Unit tests for kvdiscovery.registry."""

from __future__ import annotations

import pytest

from kvdiscovery.errors import DuplicateTypeError, InvalidArgumentError, NoSuchTypeError
from kvdiscovery.models.types import BindingType
from kvdiscovery.persistence import StoreAdapter
from kvdiscovery.registry import TypeRegistry, coerce_type
from kvdiscovery.store import MemoryStore


@pytest.fixture()
async def registry(store: MemoryStore, repo) -> TypeRegistry:
    adapter = await StoreAdapter.load(store, repo)
    return TypeRegistry(adapter.index, adapter)


class TestCoerceType:
    def test_wraps_name(self) -> None:
        assert coerce_type("style") == BindingType(name="style")

    def test_passes_type_through(self, thumbnail_type: BindingType) -> None:
        assert coerce_type(thumbnail_type) is thumbnail_type

    @pytest.mark.parametrize("value", [42, None, ["style"]])
    def test_rejects_other_values(self, value) -> None:
        with pytest.raises(InvalidArgumentError, match="Expected argument of type"):
            coerce_type(value)

    def test_rejects_bad_name(self) -> None:
        with pytest.raises(InvalidArgumentError, match="start with a letter"):
            coerce_type("1style")


class TestTypeRegistry:
    async def test_define_and_get(self, registry: TypeRegistry) -> None:
        defined = await registry.define("style")
        assert registry.is_defined("style")
        assert await registry.get("style") is defined

    async def test_duplicate_rejected(self, registry: TypeRegistry, thumbnail_type) -> None:
        await registry.define(thumbnail_type)
        with pytest.raises(DuplicateTypeError):
            await registry.define("thumbnail")
        assert await registry.get("thumbnail") == thumbnail_type

    async def test_undefine(self, registry: TypeRegistry, store: MemoryStore) -> None:
        await registry.define("style")
        await registry.undefine("style")
        assert not registry.is_defined("style")
        assert not await store.exists("style")
        with pytest.raises(NoSuchTypeError):
            await registry.get("style")

    async def test_undefine_unknown_raises(self, registry: TypeRegistry) -> None:
        with pytest.raises(NoSuchTypeError):
            await registry.undefine("style")

    async def test_get_loads_lazily_from_store(
        self, registry: TypeRegistry, store: MemoryStore, repo, thumbnail_type
    ) -> None:
        await registry.define(thumbnail_type)

        adapter = await StoreAdapter.load(store, repo)
        fresh = TypeRegistry(adapter.index, adapter)

        assert fresh.is_defined("thumbnail")
        assert await fresh.get("thumbnail") == thumbnail_type

    async def test_all_defined_sorted_by_name(self, registry: TypeRegistry) -> None:
        await registry.define("style")
        await registry.define("script")
        assert [t.name for t in await registry.all_defined()] == ["script", "style"]

    async def test_clear_only_drops_cache(self, registry: TypeRegistry) -> None:
        await registry.define("style")
        registry.clear()
        assert registry.is_defined("style")
        assert (await registry.get("style")).name == "style"
