"""Time-windowed reindex coalescing for search indexes."""

from .config import IndexStrategyConfig, Settings, settings
from .exceptions import (
    CoordinationUnavailable,
    ReindexFailure,
    ReindexSchedulerError,
    UnknownIndex,
)
from .services import (
    DelayedReindexScheduler,
    InMemoryCoordinationStore,
    RedisCoordinationStore,
    ReindexWorker,
    clear_all_windows,
    connect_scheduler,
    derive_window,
    index_registry,
)

__version__ = "0.1.0"
