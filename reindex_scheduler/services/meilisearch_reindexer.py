"""Reindex invoker that pushes records into Meilisearch.

Documents come from an application-supplied loader, so this module knows
nothing about the primary data store. Ids the loader does not return are
treated as deleted and removed from the index.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from meilisearch_python_sdk import AsyncClient

from ..config import settings

logger = logging.getLogger(__name__)

# (index_name, record_ids) -> documents for the ids that still exist
DocumentLoader = Callable[[str, list[str]], Awaitable[list[dict[str, Any]]]]


def create_meili_client() -> AsyncClient:
    """Create a Meilisearch client from settings."""
    if not settings.meilisearch_api_key:
        logger.warning(
            "meilisearch_api_key is empty -- Meilisearch is unauthenticated. "
            "Set MEILISEARCH_API_KEY in production."
        )
    return AsyncClient(
        url=settings.meilisearch_url,
        api_key=settings.meilisearch_api_key or None,
        timeout=settings.meilisearch_timeout,
    )


class MeilisearchReindexer:
    """
    Reindex records in a Meilisearch index.

    - No field restriction: documents are replaced (add_documents)
    - Field restriction: documents are trimmed to the primary key plus those
      fields and merged into existing ones (update_documents)
    - Unless refresh is suppressed, each task is awaited so the change is
      searchable when reindex() returns
    """

    def __init__(
        self,
        client: AsyncClient,
        loader: DocumentLoader,
        primary_key: str = "id",
        wait_timeout_ms: Optional[int] = None,
    ) -> None:
        self._client = client
        self._loader = loader
        self._primary_key = primary_key
        self._wait_timeout_ms = wait_timeout_ms or settings.meilisearch_wait_timeout_ms

    async def reindex(
        self,
        index_name: str,
        record_ids: list[str],
        *,
        update_fields: Optional[list[str]] = None,
        refresh_suppressed: bool = False,
    ) -> None:
        index = self._client.index(index_name)
        documents = await self._loader(index_name, record_ids)

        found = {str(doc[self._primary_key]) for doc in documents}
        missing = [record_id for record_id in record_ids if record_id not in found]

        tasks = []
        if documents:
            if update_fields:
                keep = {self._primary_key, *update_fields}
                partial = [
                    {key: value for key, value in doc.items() if key in keep}
                    for doc in documents
                ]
                tasks.append(
                    await index.update_documents(partial, primary_key=self._primary_key)
                )
            else:
                tasks.append(
                    await index.add_documents(documents, primary_key=self._primary_key)
                )
        if missing:
            tasks.append(await index.delete_documents(missing))

        if not refresh_suppressed:
            for task in tasks:
                await self._client.wait_for_task(
                    task.task_uid,
                    timeout_in_ms=self._wait_timeout_ms,
                    raise_for_status=True,
                )

        logger.info(
            "Meilisearch reindex: index=%s upserted=%d deleted=%d fields=%s",
            index_name,
            len(documents),
            len(missing),
            update_fields or "all",
        )
