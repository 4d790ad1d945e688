"""Configuration loaded from the environment."""

from .settings import CallcaseSettings, GenSettings, HttpSettings, LoggingSettings, clear_settings_cache, get_settings

__all__ = ["CallcaseSettings", "LoggingSettings", "HttpSettings", "GenSettings", "get_settings", "clear_settings_cache"]
