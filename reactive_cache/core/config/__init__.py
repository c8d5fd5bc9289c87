"""
Configuration package for the reactive cache.

- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Subject defaults, key layout, stage identifiers and enums
"""

from .settings import (
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
