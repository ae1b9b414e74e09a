"""Maintenance operations for delayed reindex windows."""

import logging
import time
from typing import Optional

from ..exceptions import ReindexSchedulerError
from .contracts import CoordinationStore
from .index_registry import IndexRegistry
from .reindex_worker import ReindexWorker
from .window_keys import window_deadline

logger = logging.getLogger(__name__)


async def clear_all_windows(store: CoordinationStore) -> int:
    """
    Drop every open window and registry, for all indexes.

    Already-enqueued jobs are left alone; when they fire they find nothing
    to claim and finish as no-ops.

    Returns:
        Number of windows/keys removed
    """
    removed = await store.clear_all()
    logger.info(f"Cleared delayed reindex state: {removed} entries removed")
    return removed


async def sweep_overdue_windows(
    store: CoordinationStore,
    worker: ReindexWorker,
    grace: int,
    now: Optional[float] = None,
    registry: Optional[IndexRegistry] = None,
) -> dict[str, int]:
    """
    Perform windows whose job should have run long ago.

    A window is overdue once ``deadline + grace`` has passed, which means
    its job was never enqueued or was lost. Each overdue window goes through
    the normal worker path, so a job that shows up late simply no-ops.

    Args:
        store: Shared window state
        worker: Worker used to claim and reindex
        grace: Seconds past the deadline before a window counts as overdue
        now: Current Unix time (defaults to time.time())
        registry: Source of per-index latency/margin (defaults to the worker's)

    Returns:
        dict with counts of performed and failed windows
    """
    now = time.time() if now is None else now
    registry = registry or worker.registry
    performed = 0
    failed = 0

    for index_name in await store.indexes():
        config = registry.config_for(index_name)
        for window_start in await store.open_windows(index_name):
            deadline = window_deadline(window_start, config.latency, config.margin)
            if deadline + grace > now:
                # Registries are ordered; later windows are not overdue either
                break
            try:
                result = await worker.perform(index_name, window_start)
            except ReindexSchedulerError as exc:
                logger.error(f"Overdue window {index_name}:{window_start} failed: {exc}")
                failed += 1
                continue
            logger.warning(
                f"Recovered overdue window {index_name}:{window_start} ({result['status']})"
            )
            performed += 1

    return {"performed": performed, "failed": failed}


__all__ = ["clear_all_windows", "sweep_overdue_windows"]
