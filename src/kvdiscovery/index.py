"""In-memory binding index.

Two reverse indexes plus the binding table and the ID allocator. No I/O:
``StoreAdapter`` persists snapshots of this structure after every mutation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kvdiscovery.bindings import ResourceBinding


@dataclass
class BindingIndex:
    # type name → IDs bound to it; every defined type has a key, possibly empty
    type_index: dict[str, set[int]] = field(default_factory=dict)

    # exact query string → IDs registered under it; empty keys are dropped
    query_index: dict[str, set[int]] = field(default_factory=dict)

    # binding ID → binding object, filled on insert and on lazy load
    bindings: dict[int, ResourceBinding] = field(default_factory=dict)

    high_water: int = 1

    @classmethod
    def from_snapshots(
        cls,
        type_snapshot: Mapping[str, Iterable[int]],
        query_snapshot: Mapping[str, Iterable[int]],
        next_id: int = 1,
    ) -> BindingIndex:
        return cls(
            type_index={name: {int(i) for i in ids} for name, ids in type_snapshot.items()},
            query_index={query: {int(i) for i in ids} for query, ids in query_snapshot.items()},
            high_water=int(next_id),
        )

    def type_snapshot(self) -> dict[str, list[int]]:
        return {name: sorted(ids) for name, ids in self.type_index.items()}

    def query_snapshot(self) -> dict[str, list[int]]:
        return {query: sorted(ids) for query, ids in self.query_index.items()}

    # ------------------------------------------------------------------
    # IDs
    # ------------------------------------------------------------------

    def next_id(self) -> int:
        """Reserve and return the next binding ID. IDs are never recycled."""
        binding_id = self.high_water
        self.high_water += 1
        return binding_id

    def live_ids(self) -> set[int]:
        ids: set[int] = set()
        for type_ids in self.type_index.values():
            ids |= type_ids
        return ids

    def contains(self, binding_id: int) -> bool:
        return any(binding_id in ids for ids in self.type_index.values())

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def has_type(self, type_name: str) -> bool:
        return type_name in self.type_index

    def type_names(self) -> list[str]:
        return sorted(self.type_index)

    def add_type(self, type_name: str) -> None:
        self.type_index.setdefault(type_name, set())

    def remove_type(self, type_name: str) -> None:
        """Drop a type key. Its bindings must have been removed already."""
        self.type_index.pop(type_name, None)

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def insert(self, binding_id: int, binding: ResourceBinding) -> None:
        self.bindings[binding_id] = binding
        self.type_index.setdefault(binding.type_name, set()).add(binding_id)
        self.query_index.setdefault(binding.query, set()).add(binding_id)

    def remove_id(self, binding_id: int) -> None:
        """Drop ``binding_id`` from the table and both indexes.

        A cached binding is removed through its own type and query keys.
        Uncached IDs fall back to scanning every index entry.
        """
        binding = self.bindings.pop(binding_id, None)
        if binding is not None:
            self._discard(self.type_index, binding.type_name, binding_id, drop_empty=False)
            self._discard(self.query_index, binding.query, binding_id, drop_empty=True)
            return

        for ids in self.type_index.values():
            ids.discard(binding_id)

        for query in list(self.query_index):
            ids = self.query_index[query]
            ids.discard(binding_id)
            if not ids:
                del self.query_index[query]

    @staticmethod
    def _discard(
        index: dict[str, set[int]], key: str, binding_id: int, *, drop_empty: bool
    ) -> None:
        ids = index.get(key)
        if ids is None:
            return
        ids.discard(binding_id)
        if drop_empty and not ids:
            del index[key]

    def candidates(self, query: str | None = None, type_name: str | None = None) -> set[int]:
        """IDs matching the query and/or type through the reverse indexes.

        With neither filter given, every live ID is a candidate.
        """
        if query is not None and type_name is not None:
            return self.query_index.get(query, set()) & self.type_index.get(type_name, set())
        if query is not None:
            return set(self.query_index.get(query, ()))
        if type_name is not None:
            return set(self.type_index.get(type_name, ()))
        return self.live_ids()

    def select(
        self,
        query: str | None = None,
        type_name: str | None = None,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> list[int]:
        """Candidate IDs whose bindings also match ``parameter_values``.

        When a parameter filter is given every candidate must be present in
        ``bindings``; a missing one raises ``KeyError``.
        """
        ids = self.candidates(query, type_name)
        if parameter_values:
            ids = {i for i in ids if self.bindings[i].matches(parameter_values)}
        return sorted(ids)

    def remove_where(
        self,
        query: str | None = None,
        type_name: str | None = None,
        parameter_values: Mapping[str, Any] | None = None,
    ) -> list[int]:
        removed = self.select(query, type_name, parameter_values)
        for binding_id in removed:
            self.remove_id(binding_id)
        return removed

    def clear(self) -> None:
        self.type_index.clear()
        self.query_index.clear()
        self.bindings.clear()
        self.high_water = 1
