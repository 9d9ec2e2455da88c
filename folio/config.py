"""Service configuration.

Loaded with pydantic-settings from init arguments, ``FOLIO_`` environment
variables, a ``.env`` file and a YAML file (``folio.yaml`` or the path in
``FOLIO_CONFIG_FILE``), in that order of priority.
"""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .durations import parse_duration
from .errors import InvalidDurationError
from .expiration.config import ExpirationConfig
from .paths import RelativePath

# YAML config file location when FOLIO_CONFIG_FILE is unset
DEFAULT_CONFIG_FILE = "folio.yaml"

# Default request file size limit (5 MiB)
DEFAULT_MAX_UPLOAD_SIZE = 5 * 1024 * 1024


class FolioConfig(BaseSettings):
    """
    Folio service configuration.

    Environment variables are prefixed with FOLIO_:
        FOLIO_UPLOADS_PATH: Storage root for managed files (default: ./uploads)
        FOLIO_WEB_PATH: Static web assets served at / (default: ./web/dist)
        FOLIO_GARBAGE_COLLECTION_PATTERN: JSON list of file name regexes
        FOLIO_UPLOAD_ID_LENGTH: Characters per generated upload id (default: 8)
        FOLIO_MAX_UPLOAD_SIZE: Request file size limit in bytes (default: 5 MiB)
        FOLIO_DEFAULT_EXPIRE: Expiry for uploads without ?expire= (default: none)
        FOLIO_HOST / FOLIO_PORT: Listen address (default: 0.0.0.0:8080)
        FOLIO_EXPIRATION__*: Scheduler settings, see ExpirationConfig
    """

    model_config = SettingsConfigDict(
        env_prefix="FOLIO_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    web_path: Path = Path("./web/dist")

    uploads_path: Path = Path("./uploads")

    # Files matching these names are swept from the storage root at startup
    garbage_collection_pattern: list[str] = Field(
        default_factory=lambda: [r"^\._.+", r"^\.DS_Store$"]
    )

    upload_id_length: int = Field(default=8, ge=4, le=64)

    # Bound on the id generation loop
    upload_id_attempts: int = Field(default=32, ge=1)

    max_upload_size: int = Field(default=DEFAULT_MAX_UPLOAD_SIZE, ge=1)

    default_expire: timedelta | None = None

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = "INFO"

    expiration: ExpirationConfig = Field(default_factory=ExpirationConfig)

    @field_validator("garbage_collection_pattern")
    @classmethod
    def _patterns_compile(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid garbage collection pattern {pattern!r}: {e}") from e
        return patterns

    @field_validator("default_expire", mode="before")
    @classmethod
    def _parse_expire(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return parse_duration(value)
            except InvalidDurationError as e:
                raise ValueError(str(e)) from e
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = os.environ.get("FOLIO_CONFIG_FILE", DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )

    def garbage_patterns(self) -> list[re.Pattern[str]]:
        """Compiled garbage collection patterns."""
        return [re.compile(p) for p in self.garbage_collection_pattern]

    def build_full_upload_path(self, path: RelativePath) -> Path:
        """Absolute location of a resolved path under the uploads root."""
        return path.join(Path(os.path.abspath(self.uploads_path)))
