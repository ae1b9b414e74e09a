"""In-process coordination store.

Holds window state in dictionaries guarded by a single lock. Suitable for
single-process deployments and tests; multi-process deployments need
RedisCoordinationStore.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from .contracts import WindowRef, WindowState


@dataclass
class _WindowEntry:
    """Mutable accumulation for one window."""

    record_ids: Set[str] = field(default_factory=set)
    update_fields: Set[str] = field(default_factory=set)
    all_fields: bool = False
    has_fields: bool = False
    expires_at: float = 0.0


class InMemoryCoordinationStore:
    """
    Coordination store backed by process memory.

    Mirrors RedisCoordinationStore semantics, including TTL expiry of
    abandoned state, so the two can be swapped freely.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # (index_name, window_start) -> accumulated entry
        self._windows: Dict[Tuple[str, int], _WindowEntry] = {}
        # index_name -> open window starts
        self._registry: Dict[str, Set[int]] = {}

    def _entry(self, window: WindowRef, ttl: int) -> _WindowEntry:
        key = (window.index_name, window.window_start)
        entry = self._windows.get(key)
        now = self._clock()
        if entry is None or entry.expires_at <= now:
            entry = _WindowEntry()
            self._windows[key] = entry
        entry.expires_at = now + ttl
        return entry

    async def create_if_absent(self, window: WindowRef, deadline: int, ttl: int) -> bool:
        with self._lock:
            starts = self._registry.setdefault(window.index_name, set())
            if window.window_start in starts:
                return False
            starts.add(window.window_start)
            return True

    async def union_add(self, window: WindowRef, record_ids: Iterable[str], ttl: int) -> None:
        members = {str(record_id) for record_id in record_ids}
        with self._lock:
            self._entry(window, ttl).record_ids.update(members)

    async def merge_field_restriction(
        self, window: WindowRef, update_fields: Optional[Iterable[str]], ttl: int
    ) -> None:
        fields = {str(name) for name in update_fields or ()}
        with self._lock:
            entry = self._entry(window, ttl)
            entry.has_fields = True
            if not fields:
                entry.all_fields = True
                entry.update_fields.clear()
            elif not entry.all_fields:
                entry.update_fields.update(fields)

    async def read_and_delete(self, window: WindowRef) -> Optional[WindowState]:
        key = (window.index_name, window.window_start)
        with self._lock:
            starts = self._registry.get(window.index_name, set())
            registered = window.window_start in starts
            starts.discard(window.window_start)
            if not self._registry.get(window.index_name):
                self._registry.pop(window.index_name, None)
            entry = self._windows.pop(key, None)
            if entry is not None and entry.expires_at <= self._clock():
                entry = None
            if entry is None:
                return None if not registered else WindowState(frozenset())

        if entry.all_fields or not entry.has_fields:
            update_fields = None
        else:
            update_fields = frozenset(entry.update_fields)
        return WindowState(frozenset(entry.record_ids), update_fields)

    async def open_windows(self, index_name: str) -> list[int]:
        with self._lock:
            return sorted(self._registry.get(index_name, set()))

    async def indexes(self) -> list[str]:
        with self._lock:
            return sorted(self._registry)

    async def clear_all(self) -> int:
        with self._lock:
            removed = sum(len(starts) for starts in self._registry.values())
            self._registry.clear()
            self._windows.clear()
        return removed
