"""Consumer side of delayed reindexing.

Runs when a window's job fires: claims the window, then hands the merged
ids and fields to the index's invoker, inside the configured wrapper.

The claim happens before the reindex call. If the reindex fails, the job
fails and the queue may redeliver it, but the redelivered job finds the
window already claimed and does nothing: the batch is dropped, not retried.
"""

import logging
from typing import Any, Optional

from ..config import Settings, settings
from ..exceptions import ReindexFailure
from .contracts import CoordinationStore, PassthroughWrapper, WindowRef
from .index_registry import IndexRegistry, index_registry

logger = logging.getLogger(__name__)


class ReindexWorker:
    """Claims windows and performs their reindex."""

    def __init__(
        self,
        store: CoordinationStore,
        registry: Optional[IndexRegistry] = None,
        source: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.registry = registry or index_registry
        self._settings = source or settings

    async def perform(self, index_name: str, window_start: int) -> dict[str, Any]:
        """
        Claim a window and reindex its records.

        Args:
            index_name: Index the window belongs to
            window_start: Start of the window

        Returns:
            Summary dict with status "reindexed", "skipped", "empty" or "stale"

        Raises:
            UnknownIndex: If the index is not registered (nothing is claimed)
            CoordinationUnavailable: If the store is unreachable
            ReindexFailure: If the invoker or wrapper raised
        """
        entry = self.registry.get(index_name)
        window = WindowRef(index_name, int(window_start))
        summary: dict[str, Any] = {
            "index": index_name,
            "window_start": window.window_start,
            "record_count": 0,
            "update_fields": None,
        }

        state = await self.store.read_and_delete(window)
        if state is None:
            logger.debug(f"Stale claim for {window.job_id}, nothing to do")
            return {**summary, "status": "stale"}

        record_ids = state.sorted_ids()
        update_fields = state.sorted_fields()
        if not record_ids:
            logger.debug(f"Window {window.job_id} claimed with no records")
            return {**summary, "status": "empty"}

        refresh_suppressed = (
            entry.config.refresh_suppressed or self._settings.disable_refresh_async
        )

        invoked = False

        async def invoke() -> None:
            nonlocal invoked
            invoked = True
            await entry.invoker.reindex(
                index_name,
                record_ids,
                update_fields=update_fields,
                refresh_suppressed=refresh_suppressed,
            )

        wrapper = entry.config.reindex_wrapper or PassthroughWrapper()
        try:
            await wrapper.wrap(invoke)
        except Exception as exc:
            logger.error(
                f"Reindex failed for {window.job_id} ({len(record_ids)} records): {exc}",
                exc_info=True,
            )
            raise ReindexFailure(index_name, window.window_start, record_ids) from exc

        if not invoked:
            logger.info(f"Wrapper skipped reindex for {window.job_id}")
            return {**summary, "status": "skipped", "record_count": len(record_ids)}

        logger.info(
            f"Reindexed {len(record_ids)} records in {index_name} "
            f"(window={window.window_start}, fields={update_fields or 'all'})"
        )
        return {
            **summary,
            "status": "reindexed",
            "record_count": len(record_ids),
            "update_fields": update_fields,
        }
