"""Deferred job queue backed by ARQ."""

import logging
from datetime import datetime, timezone

from arq.connections import ArqRedis
from redis.exceptions import RedisError

from ..exceptions import CoordinationUnavailable
from .contracts import WindowRef

logger = logging.getLogger(__name__)

# Name of the ARQ job function registered in reindex_scheduler.worker
PERFORM_JOB_NAME = "perform_delayed_reindex"


class ArqJobQueue:
    """
    Enqueue one deferred ARQ job per window.

    The job id is derived from the window, so ARQ itself refuses a second
    enqueue for the same window while the job or its result is still kept.
    """

    def __init__(self, pool: ArqRedis, queue_name: str = "reindex") -> None:
        self._pool = pool
        self._queue_name = queue_name

    @property
    def pool(self) -> ArqRedis:
        return self._pool

    async def enqueue(self, window: WindowRef, run_at: float) -> None:
        """
        Schedule the worker for a window.

        Args:
            window: The window the job will claim
            run_at: Unix timestamp before which the job must not run

        Raises:
            CoordinationUnavailable: If the ARQ Redis cannot be reached
        """
        defer_until = datetime.fromtimestamp(run_at, tz=timezone.utc)
        try:
            job = await self._pool.enqueue_job(
                PERFORM_JOB_NAME,
                window.index_name,
                window.window_start,
                _job_id=window.job_id,
                _defer_until=defer_until,
                _queue_name=self._queue_name,
            )
        except (RedisError, OSError) as exc:
            logger.error(f"Failed to enqueue {window.job_id}: {exc}")
            raise CoordinationUnavailable(f"Job enqueue failed: {exc}") from exc

        if job is None:
            logger.debug(f"Job already enqueued: {window.job_id}")
        else:
            logger.info(f"Reindex job scheduled: {window.job_id} at {defer_until.isoformat()}")

    async def close(self) -> None:
        await self._pool.close()
