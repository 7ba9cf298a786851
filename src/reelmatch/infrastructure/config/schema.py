"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


class SearchConfig(BaseModel):
    """Search coordinator tuning (YAML section: search.*)."""

    query_timeout_seconds: float = Field(
        default=60.0,
        description="Hard limit for one query; partial results are discarded.",
    )
    detail_batch_size: int = Field(
        default=20,
        description="Container detail fetches run concurrently per batch.",
    )
    analysis_batch_size: int = Field(
        default=15,
        description="Candidates parsed per worker-thread batch in content analysis.",
    )
    term_concurrency: int = Field(
        default=4,
        description="Search terms matched in parallel during title matching.",
    )
    default_fuzzy_threshold: float = Field(
        default=0.3,
        description="Fuzzy threshold when the request gives none (0 = exact).",
    )
    prefilter_similarity: float = Field(
        default=0.85,
        description="Minimum per-character similarity of the keyword pre-filter.",
    )
    manual_aliases: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Extra search titles keyed by IMDb id.",
    )

    @field_validator("query_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("query_timeout_seconds must be > 0")
        return v

    @field_validator("detail_batch_size", "analysis_batch_size", "term_concurrency")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch sizes and concurrency must be >= 1")
        return v

    @field_validator("default_fuzzy_threshold", "prefilter_similarity")
    @classmethod
    def _validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("value must be within [0, 1]")
        return v


class CacheConfig(BaseModel):
    """In-process TTL cache (YAML section: cache.*)."""

    max_size: int = Field(default=1000, description="Entries kept before eviction.")
    default_ttl_seconds: int = Field(
        default=3600,
        description="TTL for entries stored without an explicit one (seconds).",
    )
    sweep_interval_seconds: float = Field(
        default=300.0,
        description="Interval of the background expiry sweep (seconds).",
    )
    parser_ttl_seconds: int = Field(
        default=86_400,
        description="TTL for parsed filenames (seconds).",
    )
    absolute_ttl_seconds: int = Field(
        default=86_400,
        description="TTL for absolute-episode match decisions (seconds).",
    )

    @field_validator("max_size")
    @classmethod
    def _validate_max_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache max_size must be >= 1")
        return v

    @field_validator(
        "default_ttl_seconds", "parser_ttl_seconds", "absolute_ttl_seconds"
    )
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache TTLs must be >= 0")
        return v


class HttpConfig(BaseModel):
    """Outgoing HTTP (YAML section: http.*)."""

    timeout_seconds: float = Field(
        default=30.0, description="Per-request timeout in seconds."
    )
    max_retries: int = Field(
        default=3, description="Retries on 429/5xx before giving up."
    )
    backoff_base: float = Field(
        default=1.0, description="Base of the exponential retry backoff (seconds)."
    )
    max_backoff: float = Field(
        default=30.0, description="Upper bound of one retry delay (seconds)."
    )
    user_agent: str = Field(
        default="reelmatch/0.1.0",
        description="User-Agent for outgoing HTTP requests.",
    )
    rate_limit_adaptive: bool = Field(
        default=False,
        description="Halve a host's request rate on 429/503, regrow it on success.",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http timeout_seconds must be > 0")
        return v


class AppConfig(BaseModel):
    """Validated configuration after all layers are merged.

    YAML files are sectioned (search, cache, http, logging, metadata); flat
    environment variables come in through EnvOverrides, see load.py.
    """

    app_name: str = Field(default="reelmatch", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Metadata services (YAML section: metadata.*)
    tmdb_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "tmdb_api_key",
            AliasPath("metadata", "tmdb_api_key"),
        ),
        description="TMDB key; enables alternate titles.",
    )
    trakt_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "trakt_api_key",
            AliasPath("metadata", "trakt_api_key"),
        ),
        description="Trakt client id; with the TMDB key enables absolute episodes.",
    )

    addon_url: str | None = Field(
        default=None,
        description="Base URL that stream links are routed through (optional).",
    )

    search: SearchConfig = Field(default_factory=SearchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)

    @field_validator("addon_url")
    @classmethod
    def _strip_addon_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    @property
    def alternate_titles_enabled(self) -> bool:
        return bool(self.tmdb_api_key)

    @property
    def absolute_episodes_enabled(self) -> bool:
        return bool(self.tmdb_api_key and self.trakt_api_key)


class EnvOverrides(BaseSettings):
    """``REELMATCH_*`` environment variables, e.g. ``REELMATCH_TMDB_API_KEY``.

    Only set variables end up in the environment layer; names are flat
    (``REELMATCH_CACHE_MAX_SIZE``) and load.py maps them onto sections.
    """

    model_config = SettingsConfigDict(
        env_prefix="REELMATCH_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    tmdb_api_key: Optional[str] = None
    trakt_api_key: Optional[str] = None
    addon_url: Optional[str] = None

    query_timeout_seconds: Optional[float] = None
    default_fuzzy_threshold: Optional[float] = None

    cache_max_size: Optional[int] = None
    cache_default_ttl_seconds: Optional[int] = None

    http_timeout_seconds: Optional[float] = None
    http_max_retries: Optional[int] = None
    http_user_agent: Optional[str] = None
    http_rate_limit_adaptive: Optional[bool] = None

    def to_update_dict(self) -> dict[str, Any]:
        """Values that were actually set."""
        return self.model_dump(exclude_none=True)
