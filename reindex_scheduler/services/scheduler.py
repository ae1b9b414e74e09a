"""Producer side of delayed reindexing.

Every record change calls ``postpone``. Calls for the same index that land
in the same latency window merge into one stored window; only the call that
opens the window enqueues the job that will reindex it.
"""

import logging
import time
from typing import Callable, Iterable, Optional

from arq.connections import create_pool

from ..config import settings
from ..exceptions import CoordinationUnavailable
from .contracts import CoordinationStore, DeferredJobQueue, WindowRef
from .index_registry import IndexRegistry, index_registry
from .job_queue import ArqJobQueue
from .redis_service import redis_service
from .redis_store import RedisCoordinationStore
from .window_keys import derive_window, window_deadline

logger = logging.getLogger(__name__)


class DelayedReindexScheduler:
    """
    Coalesces reindex requests into one deferred job per index and window.

    Args:
        store: Shared window state
        queue: Deferred job queue the worker jobs go to
        registry: Source of per-index latency/margin/ttl
        clock: Returns the current Unix time; injectable for tests
    """

    def __init__(
        self,
        store: CoordinationStore,
        queue: DeferredJobQueue,
        registry: Optional[IndexRegistry] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.queue = queue
        self.registry = registry or index_registry
        self._clock = clock

    async def postpone(
        self,
        index_name: str,
        record_ids: Iterable,
        update_fields: Optional[Iterable[str]] = None,
    ) -> WindowRef:
        """
        Defer a reindex of records into the current window.

        Args:
            index_name: Target index
            record_ids: Changed record ids (duplicates are fine)
            update_fields: Fields to reindex; None or empty means all fields

        Returns:
            The window the records were merged into

        Raises:
            ValueError: If index_name or record_ids is empty
            CoordinationUnavailable: If the store or queue is unreachable
        """
        if not index_name:
            raise ValueError("index_name must not be empty")
        ids = [str(record_id) for record_id in record_ids]
        if not ids:
            raise ValueError("record_ids must not be empty")
        fields = list(update_fields) if update_fields else None

        config = self.registry.config_for(index_name)
        window = WindowRef(index_name, derive_window(self._clock(), config.latency))
        deadline = window_deadline(window.window_start, config.latency, config.margin)

        created = await self.store.create_if_absent(window, deadline, config.ttl)
        await self.store.union_add(window, ids, config.ttl)
        await self.store.merge_field_restriction(window, fields, config.ttl)

        if created:
            try:
                await self.queue.enqueue(window, deadline)
            except CoordinationUnavailable:
                # Window stays registered; the overdue sweep picks it up
                logger.error(
                    f"Failed to enqueue {window.job_id}; left for the overdue sweep"
                )
                raise

        logger.debug(
            f"Postponed {len(ids)} records for {index_name} "
            f"(window={window.window_start}, new={created})"
        )
        return window

    async def close(self) -> None:
        """Release the job queue connection if it holds one."""
        close = getattr(self.queue, "close", None)
        if close is not None:
            await close()


async def connect_scheduler(
    registry: Optional[IndexRegistry] = None,
) -> DelayedReindexScheduler:
    """
    Build a scheduler wired to Redis and ARQ from settings.

    Connects the global Redis service if needed. Call ``close()`` on the
    returned scheduler at shutdown.
    """
    # Imported here to avoid a circular import with the worker module
    from ..worker import parse_redis_url

    if not redis_service.is_connected:
        await redis_service.connect()

    pool = await create_pool(
        parse_redis_url(settings.redis_url),
        default_queue_name=settings.reindex_queue_name,
    )
    store = RedisCoordinationStore(redis_service.client, prefix=settings.reindex_key_prefix)
    queue = ArqJobQueue(pool, queue_name=settings.reindex_queue_name)
    return DelayedReindexScheduler(store, queue, registry=registry)
