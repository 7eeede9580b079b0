"""YAML + env var config loading with pydantic-settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

logger = structlog.get_logger()

_PACKAGE_DIR = Path(__file__).parent.parent
_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

ONE_DAY_SECONDS = 60 * 60 * 24


def _config_file_path() -> Path:
    return Path(os.environ.get("WWW_CONFIG_FILE", str(_DEFAULTS_PATH)))


class WwwSettings(BaseSettings):
    """Site configuration.

    Sources, highest priority first: init kwargs, WWW_* env vars, the
    ``.env`` file, the YAML config file (``WWW_CONFIG_FILE``), field defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="WWW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Literal["development", "production", "test"] = "development"
    listen_host: str = "127.0.0.1"
    listen_port: int = 3000
    log_level: str = "info"
    # None: JSON lines in production, console rendering otherwise
    log_json: bool | None = None
    config_file: str = str(_DEFAULTS_PATH)

    # Static files; static_max_age overrides the env-based cache lifetime
    static_dir: str = str(_PACKAGE_DIR / "public")
    static_max_age: int | None = None

    # Templating
    templates_dir: str = str(_PACKAGE_DIR / "templates")
    template_extensions: list[str] = ["html", "jinja"]

    # Security headers
    header_preset: str = "www"
    csp_override: str = ""

    # Sessions / flash
    session_secret: str = "change-me"
    session_cookie: str = "www_session"
    flash_key: str = "flash"

    # Access log: sink is "log" or "memory"; failure policy "drop", "retry", "propagate"
    access_log_sink: Literal["log", "memory"] = "log"
    access_log_max_entries: int = 1000
    access_log_failure_policy: Literal["drop", "retry", "propagate"] = "drop"
    access_log_retries: int = 2

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=_config_file_path())
        return init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings

    @field_validator("access_log_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("access_log_retries must be >= 0")
        return value

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def json_logs(self) -> bool:
        if self.log_json is not None:
            return self.log_json
        return self.is_production

    @property
    def static_cache_seconds(self) -> int:
        """Browser cache lifetime for static files: 1 day in production, 1 second otherwise."""
        if self.static_max_age is not None:
            return self.static_max_age
        return ONE_DAY_SECONDS if self.is_production else 1


_settings: WwwSettings | None = None


def get_settings() -> WwwSettings:
    """Get or create the cached settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings(**overrides: Any) -> WwwSettings:
    """Load settings; explicit overrides beat env vars, .env and the YAML file."""
    global _settings
    _settings = WwwSettings(**overrides)
    logger.info("config_loaded", env=_settings.env, port=_settings.listen_port)
    return _settings
