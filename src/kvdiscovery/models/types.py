from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from kvdiscovery.errors import NoSuchParameterError

_NAME_PATTERN = re.compile(r"^[A-Za-z]")


def _validate_name(v: str, what: str) -> str:
    if not v:
        raise ValueError(f"The {what} name must be a non-empty string. Got: {v!r}")
    if not _NAME_PATTERN.match(v):
        raise ValueError(f"The {what} name must start with a letter. Got: {v!r}")
    return v


class BindingParameter(BaseModel):
    """A parameter that can be set when binding resources to a type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    required: bool = False
    default: Any = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_name(v, "parameter")

    @model_validator(mode="after")
    def validate_default(self) -> BindingParameter:
        if self.required and self.default is not None:
            raise ValueError(f'Required parameter "{self.name}" must not have a default value.')
        return self


class BindingType(BaseModel):
    """A named type that resources can be bound to.

    ``parameters`` may be passed as a list of ``BindingParameter``; it is
    stored keyed by parameter name, sorted so that two types with the same
    parameters compare equal regardless of declaration order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    parameters: dict[str, BindingParameter] = {}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_name(v, "type")

    @field_validator("parameters", mode="before")
    @classmethod
    def key_parameters(cls, v: Any) -> Any:
        if isinstance(v, dict):
            v = list(v.values())
        if not isinstance(v, (list, tuple)):
            return v
        keyed: dict[str, Any] = {}
        for param in v:
            if isinstance(param, BindingParameter):
                name = param.name
            elif isinstance(param, dict):
                name = param.get("name")
            else:
                return v
            if name in keyed:
                raise ValueError(f'Duplicate parameter "{name}".')
            keyed[name] = param
        return dict(sorted(keyed.items()))

    def get_parameter(self, name: str) -> BindingParameter:
        if name not in self.parameters:
            raise NoSuchParameterError.for_parameter(name, self.name)
        return self.parameters[name]

    def has_parameter(self, name: str) -> bool:
        return name in self.parameters

    def has_required_parameters(self) -> bool:
        return any(p.required for p in self.parameters.values())

    def parameter_defaults(self) -> dict[str, Any]:
        """Default values of all non-required parameters."""
        return {name: p.default for name, p in self.parameters.items() if not p.required}

    def get_parameter_default(self, name: str) -> Any:
        return self.get_parameter(name).default
