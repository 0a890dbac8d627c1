"""Configuration loading for Chirper."""

from .settings import ChirperSettings, get_settings, load_settings

__all__ = ["ChirperSettings", "get_settings", "load_settings"]
