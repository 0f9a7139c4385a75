"""Resource bindings: immutable query → type associations.

Two variants share the ``ResourceBinding`` interface:

* ``EagerBinding`` holds the resources it was constructed with.
* ``LazyBinding`` asks the resource repository on every ``get_resources()``
  call. Bindings loaded back from a store are always lazy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog

from kvdiscovery.errors import (
    InvalidArgumentError,
    MissingParameterError,
    NoSuchParameterError,
)
from kvdiscovery.models.records import BindingRecord

if TYPE_CHECKING:
    from kvdiscovery.models.types import BindingType
    from kvdiscovery.protocols import Resource, ResourceRepository

log = structlog.get_logger()

DEFAULT_LANGUAGE = "glob"


@dataclass(frozen=True, kw_only=True)
class ResourceBinding(ABC):
    # parameter_values is a read-only mapping, so bindings are not hashable
    __hash__ = None  # type: ignore[assignment]

    query: str
    type: BindingType
    parameter_values: Mapping[str, Any] = field(default_factory=dict)
    language: str = DEFAULT_LANGUAGE

    def __post_init__(self) -> None:
        if not isinstance(self.query, str) or not self.query:
            raise InvalidArgumentError(f"The query must be a non-empty string. Got: {self.query!r}")
        if not isinstance(self.language, str) or not self.language:
            raise InvalidArgumentError(
                f"The language must be a non-empty string. Got: {self.language!r}"
            )

        for name in self.parameter_values:
            if not self.type.has_parameter(name):
                raise NoSuchParameterError.for_parameter(name, self.type.name)

        for name, param in self.type.parameters.items():
            if param.required and name not in self.parameter_values:
                raise MissingParameterError.for_parameter(name, self.type.name)

        object.__setattr__(self, "parameter_values", MappingProxyType(dict(self.parameter_values)))

    @property
    def type_name(self) -> str:
        return self.type.name

    def get_parameter_values(self, include_default: bool = True) -> dict[str, Any]:
        """Parameter values, with the type's defaults filled in unless disabled."""
        if not include_default:
            return dict(self.parameter_values)
        return {**self.type.parameter_defaults(), **self.parameter_values}

    def get_parameter_value(self, name: str, include_default: bool = True) -> Any:
        if name in self.parameter_values:
            return self.parameter_values[name]
        if include_default:
            return self.type.get_parameter_default(name)
        # raises for undeclared names
        self.type.get_parameter(name)
        return None

    def has_parameter_value(self, name: str, include_default: bool = True) -> bool:
        if name in self.parameter_values:
            return True
        return include_default and name in self.type.parameter_defaults()

    def matches(self, parameter_values: Mapping[str, Any]) -> bool:
        """Whether every given parameter equals this binding's value for it."""
        values = self.get_parameter_values()
        return all(
            name in values and values[name] == value for name, value in parameter_values.items()
        )

    def to_record(self) -> BindingRecord:
        return BindingRecord(
            query=self.query,
            type_name=self.type.name,
            parameter_values=dict(self.parameter_values),
            language=self.language,
        )

    @abstractmethod
    async def get_resources(self) -> Sequence[Resource]:
        """Return the resources selected by this binding."""


@dataclass(frozen=True, kw_only=True)
class EagerBinding(ResourceBinding):
    __hash__ = None  # type: ignore[assignment]

    resources: Sequence[Resource]

    def __post_init__(self) -> None:
        resources = self.resources
        if not isinstance(resources, (list, tuple)):
            resources = (resources,)
        if len(resources) == 0:
            raise InvalidArgumentError("You should pass at least one resource to EagerBinding.")
        object.__setattr__(self, "resources", tuple(resources))
        super().__post_init__()

    async def get_resources(self) -> Sequence[Resource]:
        return self.resources


@dataclass(frozen=True, kw_only=True)
class LazyBinding(ResourceBinding):
    __hash__ = None  # type: ignore[assignment]

    repo: ResourceRepository = field(compare=False, repr=False)

    async def get_resources(self) -> Sequence[Resource]:
        log.debug("binding_resolving", query=self.query, language=self.language)
        return await self.repo.find(self.query, self.language)
