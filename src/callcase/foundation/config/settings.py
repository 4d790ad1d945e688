"""Environment-based configuration using pydantic-settings.

Example:
    >>> from callcase.foundation.config import get_settings
    >>> get_settings().http.pretty_print
    True

    # Or with environment variables:
    # CALLCASE_LOG_LEVEL=DEBUG
    # CALLCASE_HTTP_PRETTY_PRINT=false
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(env_prefix="CALLCASE_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    colors: bool | None = Field(default=None, description="Force console colors, None detects a TTY")

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class HttpSettings(BaseSettings):
    """HTTP adapter defaults."""

    model_config = SettingsConfigDict(env_prefix="CALLCASE_HTTP_", extra="ignore")

    pretty_print: bool = Field(default=True, description="Indent JSON and XML responses by two spaces")
    catch_errors: bool = Field(
        default=True,
        description="Turn exceptions raised by wrapped functions into 500 responses instead of re-raising",
    )


class GenSettings(BaseSettings):
    """Adapter generator defaults."""

    model_config = SettingsConfigDict(env_prefix="CALLCASE_GEN_", extra="ignore")

    verbose: bool = False
    support_alias: str = Field(default="_cc", pattern=r"^[A-Za-z_]\w*$",
                               description="Module alias generated code uses for callcase.synth.support")


class CallcaseSettings(BaseSettings):
    """Root settings, loaded from ``CALLCASE_`` environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CALLCASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Include tracebacks in error reports")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    gen: GenSettings = Field(default_factory=GenSettings)


@lru_cache(maxsize=1)
def get_settings() -> CallcaseSettings:
    """Global settings instance (cached)."""
    return CallcaseSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
