"""Error taxonomy for the discovery.

Every error carries a machine-readable ``ErrorCode`` and a ``recoverable``
flag. Concrete subclasses also inherit from the matching builtin where one
exists, so callers can catch ``LookupError`` or ``ValueError`` if they prefer.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DUPLICATE_TYPE = "DUPLICATE_TYPE"
    NO_SUCH_TYPE = "NO_SUCH_TYPE"
    NO_SUCH_PARAMETER = "NO_SUCH_PARAMETER"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    NO_SUCH_BINDING = "NO_SUCH_BINDING"
    STORAGE_CONSISTENCY = "STORAGE_CONSISTENCY"
    STORE_FAILURE = "STORE_FAILURE"


class DiscoveryError(Exception):
    """Base class for all errors raised by kvdiscovery."""

    code: ErrorCode = ErrorCode.INVALID_ARGUMENT
    recoverable: bool = False

    def __init__(self, message: str, *, recoverable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict[str, object]:
        return {
            "code": str(self.code),
            "message": self.message,
            "recoverable": self.recoverable,
        }


class InvalidArgumentError(DiscoveryError, ValueError):
    code = ErrorCode.INVALID_ARGUMENT


class DuplicateTypeError(DiscoveryError):
    code = ErrorCode.DUPLICATE_TYPE

    @classmethod
    def for_type_name(cls, type_name: str) -> DuplicateTypeError:
        return cls(f'The type "{type_name}" is already defined.')


class NoSuchTypeError(DiscoveryError, LookupError):
    code = ErrorCode.NO_SUCH_TYPE

    @classmethod
    def for_type_name(cls, type_name: str) -> NoSuchTypeError:
        return cls(f'The type "{type_name}" does not exist.')


class NoSuchParameterError(DiscoveryError, LookupError):
    code = ErrorCode.NO_SUCH_PARAMETER

    @classmethod
    def for_parameter(cls, name: str, type_name: str) -> NoSuchParameterError:
        return cls(f'The parameter "{name}" does not exist on type "{type_name}".')


class MissingParameterError(DiscoveryError):
    code = ErrorCode.MISSING_PARAMETER

    @classmethod
    def for_parameter(cls, name: str, type_name: str) -> MissingParameterError:
        return cls(f'The required parameter "{name}" is missing for type "{type_name}".')


class NoSuchBindingError(DiscoveryError, LookupError):
    code = ErrorCode.NO_SUCH_BINDING

    @classmethod
    def for_id(cls, binding_id: int) -> NoSuchBindingError:
        return cls(f"The binding with ID {binding_id} does not exist.")


class StorageConsistencyError(DiscoveryError):
    """An index entry references a binding whose record is gone.

    The in-memory and persisted state have diverged; this is not recoverable
    without rebuilding the store.
    """

    code = ErrorCode.STORAGE_CONSISTENCY
    recoverable = False

    @classmethod
    def for_binding_id(cls, binding_id: int) -> StorageConsistencyError:
        return cls(f"Could not fetch data for binding with ID {binding_id}.")


class StoreError(DiscoveryError):
    """The key-value backend failed to complete an operation."""

    code = ErrorCode.STORE_FAILURE
    recoverable = True
