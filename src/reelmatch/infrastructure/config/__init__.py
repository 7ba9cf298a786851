from __future__ import annotations

from .load import load_config
from .schema import AppConfig, CacheConfig, EnvOverrides, HttpConfig, SearchConfig

__all__ = [
    "AppConfig",
    "CacheConfig",
    "EnvOverrides",
    "HttpConfig",
    "SearchConfig",
    "load_config",
]
