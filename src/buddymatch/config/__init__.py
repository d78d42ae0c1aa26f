"""Configuration management for the matching engine."""

from .settings import DatabaseSettings, MatchingSettings, Settings, get_settings, reset_settings

__all__ = ["DatabaseSettings", "MatchingSettings", "Settings", "get_settings", "reset_settings"]
