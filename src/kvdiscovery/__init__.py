"""Resource-binding discovery over a key-value store."""

from __future__ import annotations

from kvdiscovery.bindings import EagerBinding, LazyBinding, ResourceBinding
from kvdiscovery.discovery import KeyValueStoreDiscovery, open_discovery
from kvdiscovery.errors import (
    DiscoveryError,
    DuplicateTypeError,
    ErrorCode,
    InvalidArgumentError,
    MissingParameterError,
    NoSuchBindingError,
    NoSuchParameterError,
    NoSuchTypeError,
    StorageConsistencyError,
    StoreError,
)
from kvdiscovery.models import BindingParameter, BindingRecord, BindingType
from kvdiscovery.store import MemoryStore, SqliteStore, open_store

__all__ = [
    # discovery
    "KeyValueStoreDiscovery",
    "open_discovery",
    # bindings
    "ResourceBinding",
    "EagerBinding",
    "LazyBinding",
    # models
    "BindingParameter",
    "BindingType",
    "BindingRecord",
    # stores
    "MemoryStore",
    "SqliteStore",
    "open_store",
    # errors
    "DiscoveryError",
    "ErrorCode",
    "InvalidArgumentError",
    "DuplicateTypeError",
    "NoSuchTypeError",
    "NoSuchParameterError",
    "MissingParameterError",
    "NoSuchBindingError",
    "StorageConsistencyError",
    "StoreError",
]
