"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (VOCABCACHE__REGISTRY__URL=https://...)
  2. vocabcache.yaml        (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("vocabcache")

# Mandatory vocabularies, always installed or updated on startup
DEFAULT_VOCABULARIES: list[str] = [
    "http://iso.org/639-1",
    "http://iso.org/iso3166-1/alpha2",
    "http://rs.gbif.org/vocabulary/gbif/datasetType",
    "http://rs.gbif.org/vocabulary/gbif/rank",
    "http://rs.gbif.org/vocabulary/gbif/agentRole",
    "http://rs.gbif.org/vocabulary/gbif/preservation_method",
    "http://rs.gbif.org/vocabulary/gbif/datasetSubtype",
    "http://rs.gbif.org/vocabulary/eml/updateFrequency",
]


def _find_config_file() -> str | None:
    """Return the path of the first vocabcache.yaml found, or None."""
    candidates = [
        Path("vocabcache.yaml"),
        Path(platformdirs.user_config_dir("vocabcache")) / "vocabcache.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RegistrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = "https://gbrds.gbif.org/registry/thesauri.json"
    request_timeout_seconds: float = 30.0


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    folder: str = ".vocabularies"
    suffix: str = ".vocab"


class DefaultsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vocabularies: list[str] = list(DEFAULT_VOCABULARIES)


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float = 30.0
    user_agent: str = "vocabcache"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: VOCABCACHE__CACHE__SUFFIX=.xml
        env_prefix="VOCABCACHE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    data_dir: str = _DEFAULT_DATA_DIR
    registry: RegistrySettings = RegistrySettings()
    cache: CacheSettings = CacheSettings()
    defaults: DefaultsSettings = DefaultsSettings()
    fetcher: FetcherSettings = FetcherSettings()
    logging: LoggingSettings = LoggingSettings()

    @property
    def cache_dir(self) -> Path:
        return Path(self.data_dir).expanduser() / "config" / self.cache.folder

    @property
    def tmp_dir(self) -> Path:
        return Path(self.data_dir).expanduser() / "tmp"

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
