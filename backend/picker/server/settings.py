"""Picker server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from picker.sessions.codes import MAX_CODE_ATTEMPTS
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class PickerServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PICKER_", env_file=".env", extra="ignore")

    database_path: str = Field(default="backend/data/picker.db", min_length=1)
    log_dir: str = "backend/logs/picker"
    cors_origins: list[str] = []
    ws_allowed_origin: str | None = None
    # Admin routes answer 403 while this is unset.
    admin_api_key: str | None = None
    roster_cache_ttl_seconds: int = Field(default=6 * 60 * 60, ge=60)
    roster_cache_max_sessions: int = Field(default=1000, ge=1)
    roster_reap_interval_seconds: int = Field(default=60, ge=1)
    max_code_attempts: int = Field(default=MAX_CODE_ATTEMPTS, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
