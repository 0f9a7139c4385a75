"""Shared fixtures: a fake resource repository, sample types and a discovery."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from kvdiscovery.discovery import KeyValueStoreDiscovery
from kvdiscovery.models.types import BindingParameter, BindingType
from kvdiscovery.store import MemoryStore


@dataclass(frozen=True)
class FakeResource:
    path: str


@dataclass
class FakeRepository:
    """Returns one resource per query and records every lookup."""

    calls: list[tuple[str, str]] = field(default_factory=list)

    async def find(self, query: str, language: str = "glob") -> list[FakeResource]:
        self.calls.append((query, language))
        return [FakeResource(query)]


@pytest.fixture()
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def thumbnail_type() -> BindingType:
    return BindingType(
        name="thumbnail",
        parameters=[
            BindingParameter(name="size", default="small"),
            BindingParameter(name="format", required=True),
        ],
    )


@pytest.fixture()
async def discovery(repo: FakeRepository, store: MemoryStore) -> KeyValueStoreDiscovery:
    return await KeyValueStoreDiscovery.create(repo, store)
