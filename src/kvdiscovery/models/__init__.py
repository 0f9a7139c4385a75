from __future__ import annotations

from kvdiscovery.models.records import BindingRecord
from kvdiscovery.models.types import BindingParameter, BindingType

__all__ = [
    # types
    "BindingParameter",
    "BindingType",
    # records
    "BindingRecord",
]
