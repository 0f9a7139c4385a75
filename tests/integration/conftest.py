"""Integration test fixtures.

Provides a discovery wired to a file-backed SQLite store through
``open_discovery`` and the configured settings. The fake repository comes
from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from kvdiscovery.config import Settings

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(store={"backend": "sqlite", "db_path": str(tmp_path / "discovery.db")})  # type: ignore[arg-type]
