"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "reelmatch",
    "environment": "dev",
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "metadata": {
        "tmdb_api_key": None,
        "trakt_api_key": None,
    },
    "search": {
        "query_timeout_seconds": 60.0,
        "detail_batch_size": 20,
        "analysis_batch_size": 15,
        "term_concurrency": 4,
        "default_fuzzy_threshold": 0.3,
        "prefilter_similarity": 0.85,
        "manual_aliases": {},
    },
    "cache": {
        "max_size": 1000,
        "default_ttl_seconds": 3600,
        "sweep_interval_seconds": 300.0,
        "parser_ttl_seconds": 86_400,
        "absolute_ttl_seconds": 86_400,
    },
    "http": {
        "timeout_seconds": 30.0,
        "max_retries": 3,
        "backoff_base": 1.0,
        "max_backoff": 30.0,
        "user_agent": "reelmatch/0.1.0",
        "rate_limit_adaptive": False,
    },
}
