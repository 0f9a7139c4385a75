"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (KVDISCOVERY__STORE__BACKEND=memory)
  3. kvdiscovery.yaml       (searched in cwd, then ~/.config/kvdiscovery/)
  4. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("kvdiscovery")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "discovery.db")


def _find_config_file() -> str | None:
    """Return the path of the first kvdiscovery.yaml found, or None."""
    candidates = [
        Path("kvdiscovery.yaml"),
        Path.home() / ".config" / "kvdiscovery" / "kvdiscovery.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class StoreSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = _DEFAULT_DB_PATH


class DiscoverySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_language: str = "glob"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: KVDISCOVERY__STORE__DB_PATH=/tmp/d.db
        env_prefix="KVDISCOVERY__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    data_dir: str = _DEFAULT_DATA_DIR
    store: StoreSettings = StoreSettings()
    discovery: DiscoverySettings = DiscoverySettings()
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def derive_db_path(self) -> Settings:
        """Place the database under data_dir unless db_path was set explicitly."""
        if "db_path" not in self.store.model_fields_set:
            db_path = str(Path(self.data_dir) / "discovery.db")
            self.store = self.store.model_copy(update={"db_path": db_path})
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
