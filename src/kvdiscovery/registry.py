"""Binding type registry with lazy loading from the store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from kvdiscovery.errors import DuplicateTypeError, InvalidArgumentError, NoSuchTypeError
from kvdiscovery.models.types import BindingType

if TYPE_CHECKING:
    from kvdiscovery.index import BindingIndex
    from kvdiscovery.persistence import StoreAdapter

log = structlog.get_logger()


def coerce_type(type_: Any) -> BindingType:
    """Accept a type name or a BindingType; reject everything else."""
    if isinstance(type_, BindingType):
        return type_
    if isinstance(type_, str):
        try:
            return BindingType(name=type_)
        except ValidationError as exc:
            raise InvalidArgumentError(exc.errors()[0]["msg"]) from exc
    raise InvalidArgumentError(
        f"Expected argument of type str or BindingType. Got: {type(type_).__name__}"
    )


class TypeRegistry:
    """Defined binding types.

    Membership lives in ``index.type_index``; the type objects themselves
    are cached here and loaded from the store on first access.
    """

    def __init__(self, index: BindingIndex, adapter: StoreAdapter) -> None:
        self._index = index
        self._adapter = adapter
        self._types: dict[str, BindingType] = {}

    async def define(self, type_: str | BindingType) -> BindingType:
        binding_type = coerce_type(type_)
        if self._index.has_type(binding_type.name):
            raise DuplicateTypeError.for_type_name(binding_type.name)

        self._types[binding_type.name] = binding_type
        self._index.add_type(binding_type.name)
        await self._adapter.persist_type_define(binding_type)
        log.info(
            "type_defined",
            type_name=binding_type.name,
            parameters=list(binding_type.parameters),
        )
        return binding_type

    async def undefine(self, type_name: str) -> None:
        """Remove a type. Its bindings must have been removed first."""
        if not self._index.has_type(type_name):
            raise NoSuchTypeError.for_type_name(type_name)

        self._types.pop(type_name, None)
        self._index.remove_type(type_name)
        await self._adapter.persist_type_undefine(type_name)
        log.info("type_undefined", type_name=type_name)

    async def get(self, type_name: str) -> BindingType:
        if type_name not in self._types:
            # keeps binding IDs and "//" keys from being read as types
            if not self._index.has_type(type_name):
                raise NoSuchTypeError.for_type_name(type_name)
            self._types[type_name] = await self._adapter.load_type(type_name)
        return self._types[type_name]

    def is_defined(self, type_name: str) -> bool:
        return self._index.has_type(type_name)

    async def all_defined(self) -> list[BindingType]:
        return [await self.get(name) for name in self._index.type_names()]

    def clear(self) -> None:
        self._types.clear()
