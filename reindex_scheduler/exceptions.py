"""Exceptions raised by the delayed reindex scheduler."""

from typing import Optional, Sequence


class ReindexSchedulerError(Exception):
    """Base exception for scheduler errors."""

    pass


class CoordinationUnavailable(ReindexSchedulerError):
    """The coordination store or the job queue could not be reached.

    Raised to ``postpone`` callers so a record change is never dropped silently.
    """

    pass


class UnknownIndex(ReindexSchedulerError, KeyError):
    """No index with this name has been registered."""

    def __init__(self, index_name: str):
        super().__init__(index_name)
        self.index_name = index_name

    def __str__(self) -> str:
        return f"Index not registered: {self.index_name}"


class ReindexFailure(ReindexSchedulerError):
    """The reindex invoker (or the wrapper around it) raised."""

    def __init__(
        self,
        index_name: str,
        window_start: int,
        record_ids: Optional[Sequence[str]] = None,
        message: str = "",
    ):
        self.index_name = index_name
        self.window_start = window_start
        self.record_ids = list(record_ids or [])
        super().__init__(
            message
            or f"Reindex failed for {index_name} window {window_start} "
            f"({len(self.record_ids)} records)"
        )
