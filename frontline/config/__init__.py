"""Configuration for Frontline.

Configuration is read from TOML files and overridden by FRONTLINE_*
environment variables.

Usage:
    from frontline.config import get_settings

    settings = get_settings()
    budget = settings.policy.budget_ms
"""

from functools import lru_cache

from frontline.config.loader import load_config
from frontline.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings.

    Precedence, lowest first: model defaults, config/default.toml,
    config/{FRONTLINE_ENV}.toml, FRONTLINE_* environment variables.
    """
    try:
        set_toml_config(load_config())
    except FileNotFoundError:
        set_toml_config({})
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and load them again."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
