"""Tests for the in-process coordination store."""

import pytest

from reindex_scheduler.services.contracts import CoordinationStore, WindowRef, WindowState
from reindex_scheduler.services.memory_store import InMemoryCoordinationStore

from conftest import FakeClock

WINDOW = WindowRef("cities", 40)


class TestInMemoryStore:
    """Primitive-level behaviour of InMemoryCoordinationStore."""

    def test_implements_protocol(self, store):
        assert isinstance(store, CoordinationStore)

    @pytest.mark.asyncio
    async def test_create_if_absent_only_once(self, store):
        assert await store.create_if_absent(WINDOW, 52, 60) is True
        assert await store.create_if_absent(WINDOW, 52, 60) is False

    @pytest.mark.asyncio
    async def test_union_add_deduplicates_and_stringifies(self, store):
        await store.union_add(WINDOW, [1, 2, 2], 60)
        await store.union_add(WINDOW, ["2", "3"], 60)

        state = await store.read_and_delete(WINDOW)

        assert state == WindowState(frozenset({"1", "2", "3"}), None)

    @pytest.mark.asyncio
    async def test_field_restriction_widens_monotonically(self, store):
        await store.merge_field_restriction(WINDOW, ["name"], 60)
        await store.merge_field_restriction(WINDOW, None, 60)
        await store.merge_field_restriction(WINDOW, ["description"], 60)
        await store.union_add(WINDOW, ["1"], 60)

        state = await store.read_and_delete(WINDOW)

        assert state.update_fields is None

    @pytest.mark.asyncio
    async def test_field_restrictions_union(self, store):
        await store.merge_field_restriction(WINDOW, ["name"], 60)
        await store.merge_field_restriction(WINDOW, ["description", "name"], 60)
        await store.union_add(WINDOW, ["1"], 60)

        state = await store.read_and_delete(WINDOW)

        assert state.update_fields == frozenset({"name", "description"})

    @pytest.mark.asyncio
    async def test_read_and_delete_missing_window(self, store):
        assert await store.read_and_delete(WINDOW) is None

    @pytest.mark.asyncio
    async def test_registry_is_ordered_per_index(self, store):
        for start in (60, 40, 50):
            await store.create_if_absent(WindowRef("cities", start), start + 12, 60)
        await store.create_if_absent(WindowRef("countries", 40), 52, 60)

        assert await store.open_windows("cities") == [40, 50, 60]
        assert await store.indexes() == ["cities", "countries"]

    @pytest.mark.asyncio
    async def test_clear_all(self, store):
        await store.create_if_absent(WINDOW, 52, 60)
        await store.union_add(WINDOW, ["1"], 60)
        await store.create_if_absent(WindowRef("countries", 40), 52, 60)

        assert await store.clear_all() == 2
        assert await store.indexes() == []
        assert await store.read_and_delete(WINDOW) is None

    @pytest.mark.asyncio
    async def test_expired_state_is_dropped(self):
        clock = FakeClock(1000.0)
        store = InMemoryCoordinationStore(clock=clock)
        await store.union_add(WINDOW, ["1"], 30)

        clock.advance(31)

        assert await store.read_and_delete(WINDOW) is None
