from __future__ import annotations

from functools import lru_cache

from .global_settings import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first access."""
    return Settings()


__all__ = ["Settings", "get_settings"]
