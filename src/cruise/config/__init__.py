"""Configuration for CRUISE."""

from .settings import GameSettings, HitboxSettings, LedgerSettings, Settings, get_settings

__all__ = ["GameSettings", "HitboxSettings", "LedgerSettings", "Settings", "get_settings"]
