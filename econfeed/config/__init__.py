"""Configuration module for econfeed."""

from .settings import Settings, get_settings, settings
from .constants import Source

__all__ = ["settings", "Settings", "get_settings", "Source"]
