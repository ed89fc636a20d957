"""
Tests for the EntryStore implementation.

These tests verify the core functionality of the entry storage system,
including ordering, field replacement, idempotent deletes, and the change
feed.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from techo.models import EntryCreate, EntryUpdate
from techo.store import EntryStore, EntryStoreError, StorageUnavailableError


def _utc_now_seconds() -> datetime:
    # sqlite's CURRENT_TIMESTAMP is naive UTC with second precision
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


class TestEntryStore:
    """Test suite for EntryStore functionality."""

    def setup_method(self):
        """Set up a fresh in-memory EntryStore for each test."""
        self.store = EntryStore("sqlite://")
        self.store.create_schema()

    def teardown_method(self):
        self.store.dispose()

    async def test_initial_state(self):
        """Test that a new store has no entries."""
        assert await self.store.list_entries() == []

    async def test_create_and_list(self):
        """Test that a created entry is listed with all submitted fields."""
        before = _utc_now_seconds()

        entry_id = await self.store.create(
            EntryCreate(
                date="2024-02-01",
                title="Morning Walk",
                content="Cold but bright",
                mood="happy",
                tags="walk, winter",
            )
        )

        entries = await self.store.list_entries()
        assert len(entries) == 1

        entry = entries[0]
        assert entry.id == entry_id
        assert entry.date == "2024-02-01"
        assert entry.title == "Morning Walk"
        assert entry.content == "Cold but bright"
        assert entry.mood == "happy"
        assert entry.tags == "walk, winter"
        assert entry.created_at is not None
        assert entry.created_at >= before

    async def test_ids_increase_and_are_never_reused(self):
        """Test that ids grow monotonically, even across deletes."""
        first = await self.store.create(EntryCreate(date="2024-01-01"))
        second = await self.store.create(EntryCreate(date="2024-01-02"))
        assert second > first

        await self.store.delete(second)
        third = await self.store.create(EntryCreate(date="2024-01-03"))
        assert third > second

    async def test_list_orders_by_date_descending(self):
        """Test that entries come back newest date first."""
        await self.store.create(EntryCreate(date="2024-03-02", title="b"))
        await self.store.create(EntryCreate(date="2024-03-05", title="c"))
        await self.store.create(EntryCreate(date="2024-03-04", title="x"))

        titles = [e.title for e in await self.store.list_entries()]
        assert titles == ["c", "x", "b"]

        # An entry dated earlier than everything else goes last
        await self.store.create(EntryCreate(date="2023-12-31", title="a"))
        entries = await self.store.list_entries()
        assert entries[-1].title == "a"

    async def test_same_date_keeps_insertion_order(self):
        """Test that entries sharing a date are listed in insertion order."""
        await self.store.create(EntryCreate(date="2024-03-01", title="first"))
        await self.store.create(EntryCreate(date="2024-03-01", title="second"))

        titles = [e.title for e in await self.store.list_entries()]
        assert titles == ["first", "second"]

    async def test_update_replaces_mutable_fields(self):
        """Test that update rewrites exactly title, content, mood and tags."""
        entry_id = await self.store.create(
            EntryCreate(
                date="2024-02-01", title="old", content="text", mood="sad", tags="a"
            )
        )
        original = (await self.store.list_entries())[0]

        rows = await self.store.update(entry_id, EntryUpdate(title="new", mood="calm"))
        assert rows == 1

        updated = (await self.store.list_entries())[0]
        assert updated.title == "new"
        assert updated.mood == "calm"
        # Fields missing from the update are cleared
        assert updated.content is None
        assert updated.tags is None
        # Identity fields are untouched
        assert updated.id == original.id
        assert updated.date == original.date
        assert updated.created_at == original.created_at

    async def test_update_unknown_id(self):
        """Test that updating a missing id changes nothing and does not fail."""
        await self.store.create(EntryCreate(date="2024-02-01", title="keep"))

        rows = await self.store.update(999, EntryUpdate(title="ghost"))

        assert rows == 0
        entries = await self.store.list_entries()
        assert len(entries) == 1
        assert entries[0].title == "keep"

    async def test_delete_is_idempotent(self):
        """Test that delete removes one row and a repeat delete is a no-op."""
        keep = await self.store.create(EntryCreate(date="2024-02-01"))
        gone = await self.store.create(EntryCreate(date="2024-02-02"))

        assert await self.store.delete(gone) == 1
        assert [e.id for e in await self.store.list_entries()] == [keep]

        assert await self.store.delete(gone) == 0
        assert [e.id for e in await self.store.list_entries()] == [keep]

    async def test_create_without_date_fails(self):
        """Test that a missing date surfaces as a query failure."""
        with pytest.raises(EntryStoreError):
            await self.store.create(EntryCreate(title="no date"))

        assert await self.store.list_entries() == []

    async def test_streaming(self):
        """Test that a subscriber receives one event per write."""
        received = []

        async def consumer():
            async with self.store.stream() as changes:
                async for change in changes:
                    received.append((change.action, change.entry_id))
                    if len(received) >= 3:  # snapshot + 2 writes
                        break

        task = asyncio.create_task(consumer())

        # Let it subscribe
        await asyncio.sleep(0.01)

        entry_id = await self.store.create(EntryCreate(date="2024-02-01"))
        await asyncio.sleep(0.01)
        await self.store.delete(entry_id)

        try:
            await asyncio.wait_for(task, timeout=2.0)
        except TimeoutError:
            task.cancel()
            assert False, f"Streaming test timed out. Got: {received}"

        assert received == [
            ("snapshot", None),
            ("created", entry_id),
            ("deleted", entry_id),
        ]

    async def test_no_op_writes_are_not_published(self):
        """Test that updates and deletes of unknown ids do not bump the revision."""
        async with self.store.stream() as changes:
            first = await anext(changes)
            assert first.revision == 0

            await self.store.delete(42)
            await self.store.update(42, EntryUpdate(title="nothing"))
            entry_id = await self.store.create(EntryCreate(date="2024-02-01"))

            change = await asyncio.wait_for(anext(changes), timeout=2.0)
            assert change.revision == 1
            assert change.entry_id == entry_id


class TestStorageUnavailable:
    async def test_initialize_fails_for_unreachable_database(self, tmp_path):
        """Test that schema creation on an unopenable path is reported."""
        store = EntryStore(f"sqlite:///{tmp_path}/missing/dir/techo.db")

        with pytest.raises(StorageUnavailableError):
            await store.initialize()

        store.dispose()
