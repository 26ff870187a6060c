"""Configuration package for the net-worth analytics service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
