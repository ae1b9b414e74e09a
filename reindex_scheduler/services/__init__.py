"""Coalescing scheduler services."""

from .contracts import (
    CoordinationStore,
    DeferredJobQueue,
    PassthroughWrapper,
    ReindexInvoker,
    ReindexWrapper,
    WindowRef,
    WindowState,
)
from .index_registry import (
    IndexRegistry,
    RegisteredIndex,
    index_registry,
)
from .job_queue import ArqJobQueue
from .maintenance import (
    clear_all_windows,
    sweep_overdue_windows,
)
from .meilisearch_reindexer import (
    MeilisearchReindexer,
    create_meili_client,
)
from .memory_store import InMemoryCoordinationStore
from .redis_service import (
    RedisService,
    redis_service,
)
from .redis_store import RedisCoordinationStore
from .reindex_worker import ReindexWorker
from .scheduler import (
    DelayedReindexScheduler,
    connect_scheduler,
)
from .window_keys import (
    derive_window,
    window_deadline,
)
