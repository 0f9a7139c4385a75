from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class BindingRecord(BaseModel):
    """Persisted form of a binding.

    Stored as the 4-element list ``[query, type_name, parameter_values, language]``.
    Only caller-supplied parameter values are kept; defaults come from the type.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    type_name: str
    parameter_values: dict[str, Any] = {}
    language: str = "glob"

    def to_row(self) -> list[Any]:
        return [self.query, self.type_name, dict(self.parameter_values), self.language]

    @classmethod
    def from_row(cls, row: list[Any]) -> BindingRecord:
        query, type_name, parameter_values, language = row
        return cls(
            query=query,
            type_name=type_name,
            parameter_values=parameter_values or {},
            language=language,
        )
