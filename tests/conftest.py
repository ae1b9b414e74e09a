"""Shared pytest fixtures for scheduler tests."""

import os
import sys
from typing import Any, Optional

import pytest

# Add package to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reindex_scheduler.config import Settings
from reindex_scheduler.exceptions import CoordinationUnavailable
from reindex_scheduler.services.contracts import WindowRef
from reindex_scheduler.services.index_registry import IndexRegistry
from reindex_scheduler.services.memory_store import InMemoryCoordinationStore
from reindex_scheduler.services.reindex_worker import ReindexWorker
from reindex_scheduler.services.scheduler import DelayedReindexScheduler

# Aligned to a 10s and a 60s boundary
BASE_TIME = 1_700_000_040.0


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingInvoker:
    """Reindex invoker that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None

    async def reindex(
        self,
        index_name: str,
        record_ids: list[str],
        *,
        update_fields: Optional[list[str]] = None,
        refresh_suppressed: bool = False,
    ) -> None:
        self.calls.append(
            {
                "index": index_name,
                "ids": list(record_ids),
                "update_fields": update_fields,
                "refresh_suppressed": refresh_suppressed,
            }
        )
        if self.error is not None:
            raise self.error


class InMemoryJobQueue:
    """Deferred job queue that keeps jobs until drained."""

    def __init__(self) -> None:
        self.jobs: list[tuple[WindowRef, float]] = []
        self.fail = False

    async def enqueue(self, window: WindowRef, run_at: float) -> None:
        if self.fail:
            raise CoordinationUnavailable("queue down")
        self.jobs.append((window, run_at))

    async def drain(self, worker: ReindexWorker) -> list[dict[str, Any]]:
        """Run every queued job in deadline order and empty the queue."""
        jobs, self.jobs = sorted(self.jobs, key=lambda job: job[1]), []
        return [await worker.perform(w.index_name, w.window_start) for w, _ in jobs]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        reindex_latency=10,
        reindex_margin=2,
        disable_refresh_async=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore()


@pytest.fixture
def queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture
def invoker() -> RecordingInvoker:
    return RecordingInvoker()


@pytest.fixture
def registry(test_settings: Settings, invoker: RecordingInvoker) -> IndexRegistry:
    registry = IndexRegistry(test_settings)
    registry.register("cities", invoker)
    return registry


@pytest.fixture
def scheduler(store, queue, registry, clock) -> DelayedReindexScheduler:
    return DelayedReindexScheduler(store, queue, registry=registry, clock=clock)


@pytest.fixture
def worker(store, registry, test_settings) -> ReindexWorker:
    return ReindexWorker(store, registry, test_settings)


@pytest.fixture
def base_time() -> float:
    return BASE_TIME
