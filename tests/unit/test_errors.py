"""Unit tests for kvdiscovery.errors."""

from __future__ import annotations

import pytest

from kvdiscovery.errors import (
    DiscoveryError,
    DuplicateTypeError,
    ErrorCode,
    InvalidArgumentError,
    NoSuchBindingError,
    NoSuchTypeError,
    StorageConsistencyError,
    StoreError,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        ("error", "code", "recoverable"),
        [
            (DuplicateTypeError.for_type_name("style"), ErrorCode.DUPLICATE_TYPE, False),
            (NoSuchTypeError.for_type_name("style"), ErrorCode.NO_SUCH_TYPE, False),
            (NoSuchBindingError.for_id(3), ErrorCode.NO_SUCH_BINDING, False),
            (StorageConsistencyError.for_binding_id(3), ErrorCode.STORAGE_CONSISTENCY, False),
            (StoreError("disk full"), ErrorCode.STORE_FAILURE, True),
        ],
    )
    def test_code_and_recoverable(
        self, error: DiscoveryError, code: ErrorCode, recoverable: bool
    ) -> None:
        assert error.code == code
        assert error.recoverable is recoverable

    def test_builtin_bases(self) -> None:
        assert isinstance(NoSuchTypeError("x"), LookupError)
        assert isinstance(InvalidArgumentError("x"), ValueError)

    def test_recoverable_override(self) -> None:
        assert StoreError("x", recoverable=False).recoverable is False
        assert StoreError.recoverable is True

    def test_to_dict(self) -> None:
        error = NoSuchTypeError.for_type_name("style")
        assert error.to_dict() == {
            "code": "NO_SUCH_TYPE",
            "message": 'The type "style" does not exist.',
            "recoverable": False,
        }
