"""Shared configuration service for the compiler, tracker, and CLI."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}

DEFAULT_CONFIG_NAME = "wfkit.yaml"


def _default_config_path() -> Path:
    """Resolve the default config path (supports WFKIT_CONFIG_PATH override)."""
    env_path = os.getenv("WFKIT_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_NAME


def clear_config_cache() -> None:
    """Clear cached config (primarily for tests)."""
    _CONFIG_CACHE.clear()


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Load YAML configuration with caching.

    A missing file yields an empty config; a malformed one raises
    yaml.YAMLError.

    Args:
        path: Optional custom path. Defaults to WFKIT_CONFIG_PATH or ./wfkit.yaml.
    """
    resolved = Path(path).expanduser() if path else _default_config_path()
    key = str(resolved.resolve())
    if key not in _CONFIG_CACHE:
        if resolved.exists():
            with open(resolved, "r", encoding="utf-8") as f:
                _CONFIG_CACHE[key] = yaml.safe_load(f) or {}
        else:
            _CONFIG_CACHE[key] = {}
    return _CONFIG_CACHE[key]


def _get_section(section_path: str) -> Dict[str, Any]:
    """
    Return nested configuration section by dotted path (e.g. ``compiler``).
    """
    config = load_config()
    section: Any = config
    for key in section_path.split("."):
        if not isinstance(section, dict):
            return {}
        section = section.get(key)
        if section is None:
            return {}
    return section if isinstance(section, dict) else {}


def get_compiler_settings() -> Dict[str, Any]:
    """Return compiler settings with defaults filled in."""
    settings = {"default_target": "command", "warn_on_cycles": True}
    settings.update(_get_section("compiler"))
    return settings


def get_logging_settings() -> Dict[str, Any]:
    """Return logging settings (``level``)."""
    settings = {"level": "WARNING"}
    settings.update(_get_section("logging"))
    return settings
