"""
ARQ Worker Configuration

Runs delayed reindex jobs enqueued by DelayedReindexScheduler, plus the
maintenance jobs for window state.

Run with:
    arq reindex_scheduler.worker.WorkerSettings
"""

import importlib
import logging
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from .config import settings
from .services.index_registry import index_registry
from .services.maintenance import clear_all_windows, sweep_overdue_windows
from .services.redis_service import redis_service
from .services.redis_store import RedisCoordinationStore
from .services.reindex_worker import ReindexWorker

logger = logging.getLogger(__name__)

# Parse Redis URL into components for ARQ
# Format: redis://host:port/db or redis://:password@host:port/db
def parse_redis_url(url: str) -> RedisSettings:
    """Parse Redis URL into ARQ RedisSettings."""
    from urllib.parse import urlparse

    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path.lstrip("/") or 0),
    )


# =============================================================================
# Reindex Jobs
# =============================================================================


async def perform_delayed_reindex(
    ctx: dict[str, Any], index_name: str, window_start: int
) -> dict[str, Any]:
    """
    Claim one window and reindex its records.

    Errors propagate so ARQ records the failure; a redelivered job finds the
    window already claimed and returns a "stale" result.
    """
    worker: ReindexWorker = ctx["reindex_worker"]
    return await worker.perform(index_name, window_start)


# =============================================================================
# Maintenance Jobs
# =============================================================================


async def clear_delayed_reindex_windows(ctx: dict[str, Any]) -> dict[str, int]:
    """Drop all open windows. Enqueue manually for tests or incidents."""
    removed = await clear_all_windows(ctx["reindex_store"])
    return {"removed": removed}


async def sweep_overdue_reindex_windows(ctx: dict[str, Any]) -> dict[str, int]:
    """Reindex windows whose job never ran."""
    if settings.reindex_sweep_grace <= 0:
        return {"performed": 0, "failed": 0}

    return await sweep_overdue_windows(
        ctx["reindex_store"],
        ctx["reindex_worker"],
        grace=settings.reindex_sweep_grace,
    )


# =============================================================================
# Startup/Shutdown Hooks
# =============================================================================


def load_index_module(path: str) -> None:
    """Import the module that registers indexes into index_registry."""
    if not path:
        logger.warning("REINDEX_INDEX_MODULE not set; no indexes registered")
        return
    importlib.import_module(path)
    logger.info(f"Loaded index module {path}: {', '.join(index_registry.names()) or 'none'}")


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources when worker starts."""
    logger.info("ARQ reindex worker starting up...")

    await redis_service.connect()
    store = RedisCoordinationStore(redis_service.client, prefix=settings.reindex_key_prefix)
    load_index_module(settings.reindex_index_module)

    ctx["reindex_store"] = store
    ctx["reindex_worker"] = ReindexWorker(store, index_registry)
    logger.info(f"Redis health: {await redis_service.health_check()}")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    logger.info("ARQ reindex worker shutting down...")

    await redis_service.disconnect()


# =============================================================================
# Schedule Parsing
# =============================================================================


def parse_schedule_set(value: str) -> set[int]:
    """
    Parse a comma-separated string of integers into a set.

    Examples:
        "0,30" -> {0, 30}
        "15,45" -> {15, 45}
    """
    return {int(x.strip()) for x in value.split(",") if x.strip()}


def get_sweep_seconds() -> set[int]:
    """Get overdue sweep seconds from settings."""
    return parse_schedule_set(settings.arq_sweep_seconds)


# =============================================================================
# Worker Settings
# =============================================================================


class WorkerSettings:
    """ARQ worker configuration."""

    # Redis connection
    redis_settings = parse_redis_url(settings.redis_url)
    queue_name = settings.reindex_queue_name

    # Job functions that can be called via arq.enqueue_job()
    functions = [
        perform_delayed_reindex,
        clear_delayed_reindex_windows,
        sweep_overdue_reindex_windows,
    ]

    # ARQ_SWEEP_SECONDS: comma-separated seconds (default "15,45")
    cron_jobs = [
        cron(sweep_overdue_reindex_windows, second=get_sweep_seconds()),
    ]

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker behavior
    max_jobs = settings.arq_max_jobs
    job_timeout = settings.arq_job_timeout
    keep_result = settings.arq_keep_result
    max_tries = settings.arq_max_tries

    # Health check
    health_check_interval = 30
