"""Layered configuration: defaults < YAML < environment (.env) < CLI."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {"logging", "metadata", "search", "cache", "http"}
_TOP_LEVEL_KEYS: tuple[str, ...] = ("app_name", "environment", "addon_url")

# Flat keys (ENV/CLI) -> (section, key)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "tmdb_api_key": ("metadata", "tmdb_api_key"),
    "trakt_api_key": ("metadata", "trakt_api_key"),
    "query_timeout_seconds": ("search", "query_timeout_seconds"),
    "default_fuzzy_threshold": ("search", "default_fuzzy_threshold"),
    "cache_max_size": ("cache", "max_size"),
    "cache_default_ttl_seconds": ("cache", "default_ttl_seconds"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_max_retries": ("http", "max_retries"),
    "http_user_agent": ("http", "user_agent"),
    "http_rate_limit_adaptive": ("http", "rate_limit_adaptive"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* into *base* in place; nested mappings merge, leaves replace."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _deep_merge(current, value)
        else:
            base[key] = value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape AppConfig validates.

    Sectioned blocks pass through; flat keys such as ``cache_max_size``
    (environment and CLI spelling) land in their section.
    """
    out: dict[str, Any] = {
        section: dict(data[section])
        for section in _SECTION_KEYS
        if isinstance(data.get(section), Mapping)
    }
    out.update({key: data[key] for key in _TOP_LEVEL_KEYS if key in data})

    for flat_key, (section, section_key) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})[section_key] = data[flat_key]
    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated configuration.

    A ``.env`` file is loaded into the process environment first (without
    overriding variables that are already set), so it counts as part of
    the environment layer. Nothing is written to disk.

    Raises:
        FileNotFoundError: If an explicitly given file does not exist.
        ValueError: If the YAML file is not a mapping.
        pydantic.ValidationError: If the merged values are invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_read_yaml_config(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _deep_merge(merged, _normalize_layer(layer))
    return AppConfig.model_validate(merged)
