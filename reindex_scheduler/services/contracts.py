"""Contracts between the scheduler core and its collaborators.

The scheduler and worker only talk to these interfaces:
- CoordinationStore: shared window state with atomic primitives
- DeferredJobQueue: at-least-once delayed job execution
- ReindexInvoker: pushes records into a search index
- ReindexWrapper: hook that runs around each reindex invocation
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class WindowRef:
    """Identity of a coalescing window."""

    index_name: str
    window_start: int

    @property
    def job_id(self) -> str:
        """Deterministic job id, so the queue refuses duplicate enqueues."""
        return f"delayed-reindex:{self.index_name}:{self.window_start}"


@dataclass(frozen=True)
class WindowState:
    """Accumulated state of a claimed window.

    ``update_fields`` is None when the window must reindex all fields.
    """

    record_ids: frozenset[str]
    update_fields: Optional[frozenset[str]] = None

    def sorted_ids(self) -> list[str]:
        return sorted(self.record_ids)

    def sorted_fields(self) -> Optional[list[str]]:
        if self.update_fields is None:
            return None
        return sorted(self.update_fields)


@runtime_checkable
class CoordinationStore(Protocol):
    """
    Process-external window state shared by all producers and workers.

    create_if_absent, union_add, merge_field_restriction and read_and_delete
    must each be atomic. Implementations raise CoordinationUnavailable when
    the backing store cannot be reached.
    """

    async def create_if_absent(self, window: WindowRef, deadline: int, ttl: int) -> bool:
        """Register the window; True only for the caller that created it."""
        ...

    async def union_add(self, window: WindowRef, record_ids: Iterable[str], ttl: int) -> None:
        """Add record ids to the window's id set."""
        ...

    async def merge_field_restriction(
        self, window: WindowRef, update_fields: Optional[Iterable[str]], ttl: int
    ) -> None:
        """Merge fields into the window; None widens it to all fields for good."""
        ...

    async def read_and_delete(self, window: WindowRef) -> Optional[WindowState]:
        """Claim the window: return its state and remove it, or None if absent."""
        ...

    async def open_windows(self, index_name: str) -> list[int]:
        """Window starts registered for an index, oldest first."""
        ...

    async def indexes(self) -> list[str]:
        """Names of indexes with at least one registered window."""
        ...

    async def clear_all(self) -> int:
        """Remove all window state and registries; returns windows removed."""
        ...


@runtime_checkable
class DeferredJobQueue(Protocol):
    """Queue that runs the worker for a window at or after ``run_at``."""

    async def enqueue(self, window: WindowRef, run_at: float) -> None:
        ...


@runtime_checkable
class ReindexInvoker(Protocol):
    """Pushes the given records (optionally only some fields) into an index."""

    async def reindex(
        self,
        index_name: str,
        record_ids: list[str],
        *,
        update_fields: Optional[list[str]] = None,
        refresh_suppressed: bool = False,
    ) -> None:
        ...


@runtime_checkable
class ReindexWrapper(Protocol):
    """Runs around a reindex invocation and decides whether/when to call it."""

    async def wrap(self, invoke: Callable[[], Awaitable[None]]) -> None:
        ...


class PassthroughWrapper:
    """Default wrapper: invoke immediately."""

    async def wrap(self, invoke: Callable[[], Awaitable[None]]) -> None:
        await invoke()
