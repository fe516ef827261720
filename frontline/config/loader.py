"""TOML configuration loading with environment overlays."""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "FRONTLINE_CONFIG_DIR"
ENVIRONMENT_ENV = "FRONTLINE_ENV"
_SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the configuration directory.

    FRONTLINE_CONFIG_DIR wins when set. Otherwise the nearest ``config/``
    directory at or above the working directory is used.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    candidate = Path.cwd()
    for _ in range(_SEARCH_DEPTH):
        if (candidate / "config").is_dir():
            return candidate / "config"
        candidate = candidate.parent

    return Path("config")


def get_environment() -> str:
    """Name of the active environment overlay (FRONTLINE_ENV)."""
    return os.environ.get(ENVIRONMENT_ENV, "development")


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file is missing
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with file_path.open("rb") as fh:
        return tomllib.load(fh)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Tables merge key by key; any other value in ``override`` replaces the
    value in ``base``, lists included.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Load ``default.toml`` and overlay ``{FRONTLINE_ENV}.toml`` if present."""
    config_dir = get_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create config/default.toml or set {CONFIG_DIR_ENV}."
        )

    config = load_toml(default_path)
    overlay_path = config_dir / f"{get_environment()}.toml"
    if overlay_path.exists():
        config = deep_merge(config, load_toml(overlay_path))
    return config
