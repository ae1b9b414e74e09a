"""Configuration management using pydantic-settings."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis settings (coordination store and ARQ broker)
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 50
    redis_socket_timeout: float = 5.0
    redis_retry_on_timeout: bool = True

    # Coalescing defaults, overridable per index
    reindex_key_prefix: str = "reindex:delayed"
    reindex_queue_name: str = "reindex"
    reindex_latency: int = 10  # window size in seconds
    reindex_margin: int = 2  # seconds to wait after a window closes
    reindex_ttl: int = 60 * 60 * 24  # expiry for abandoned window state

    # Ask invokers not to force an index refresh after each batch
    disable_refresh_async: bool = False

    # Dotted module imported by the worker on startup to register indexes
    # Example: "myproject.search_indexes"
    reindex_index_module: str = ""

    # ARQ worker settings
    arq_max_jobs: int = 10
    arq_job_timeout: int = 300
    arq_keep_result: int = 3600
    arq_max_tries: int = 5

    # Overdue window sweep: runs at these seconds within each minute
    # Default "15,45" = twice a minute
    arq_sweep_seconds: str = "15,45"
    # Seconds past a window's deadline before the sweep picks it up (0 disables)
    reindex_sweep_grace: int = 60

    # Meilisearch settings (used by MeilisearchReindexer)
    meilisearch_url: str = "http://localhost:7700"
    meilisearch_api_key: str = ""
    meilisearch_timeout: int = 10
    meilisearch_wait_timeout_ms: int = 5000


class IndexStrategyConfig(BaseModel):
    """Per-index coalescing options.

    ``reindex_wrapper`` is any object with an async ``wrap(invoke)`` method;
    see ``reindex_scheduler.services.contracts.ReindexWrapper``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    latency: int = Field(default=10, gt=0)
    margin: int = Field(default=2, ge=0)
    ttl: int = Field(default=60 * 60 * 24, gt=0)
    refresh_suppressed: bool = False
    reindex_wrapper: Optional[Any] = None

    @classmethod
    def from_settings(cls, source: Settings, **overrides: Any) -> "IndexStrategyConfig":
        """Build a config from global settings, applying per-index overrides."""
        values: dict[str, Any] = {
            "latency": source.reindex_latency,
            "margin": source.reindex_margin,
            "ttl": source.reindex_ttl,
        }
        values.update(overrides)
        return cls(**values)


# Global settings instance
settings = Settings()
