"""
Entry storage implementation for the Techo service.

This module provides the entry store: durable CRUD over the ``entries`` table
plus a change feed that notifies subscribers after every successful write.
Each operation is a single SQL statement run in a worker thread so the event
loop is never blocked on the database.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from .db import Base, EntryRecord, make_engine, make_session_factory
from .models import Entry, EntryCreate, EntryEvent, EntryUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntryStoreError(Exception):
    """A single store operation failed; nothing was changed."""


class StorageUnavailableError(EntryStoreError):
    """The database could not be reached or its schema could not be created."""


class EntryStore:
    """
    Relational entry storage with a real-time change feed.

    Writes bump a revision counter and wake every subscriber waiting on the
    condition. Updating or deleting an unknown id is not an error; the
    affected row count is returned so callers can tell if they care.
    """

    def __init__(self, database_url: str = "sqlite:///techo.db") -> None:
        self.database_url = database_url
        self._engine = make_engine(database_url)
        self._sessions = make_session_factory(self._engine)
        self._condition = asyncio.Condition()
        self._revision = 0
        self._last_event = EntryEvent(
            revision=0, action="snapshot", timestamp=time.time()
        )

    async def initialize(self) -> None:
        """
        Create the schema if it does not exist yet.

        Raises:
            StorageUnavailableError: If the database cannot be opened
        """
        try:
            await asyncio.to_thread(self.create_schema)
        except SQLAlchemyError as e:
            logger.error("Cannot initialize entry storage at %s: %s", self.database_url, e)
            raise StorageUnavailableError(f"Cannot initialize storage: {e}") from e
        logger.info("Entry storage ready at %s", self.database_url)

    def create_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    async def list_entries(self) -> list[Entry]:
        """
        Get all entries, newest date first.

        Entries sharing a date keep their insertion order.
        """

        def _list() -> list[Entry]:
            with self._sessions() as session:
                records = session.scalars(
                    select(EntryRecord).order_by(
                        EntryRecord.date.desc(), EntryRecord.id.asc()
                    )
                )
                return [Entry.model_validate(record) for record in records]

        return await self._run("list", _list)

    async def create(self, entry: EntryCreate) -> int:
        """
        Insert a new entry.

        Args:
            entry: The entry fields; the date is stored as given

        Returns:
            The id assigned to the new entry
        """

        def _create() -> int:
            with self._sessions.begin() as session:
                record = EntryRecord(
                    date=entry.date,
                    title=entry.title,
                    content=entry.content,
                    mood=entry.mood,
                    tags=entry.tags,
                )
                session.add(record)
                session.flush()
                return record.id

        entry_id = await self._run("create", _create)
        await self._publish("created", entry_id)
        return entry_id

    async def update(self, entry_id: int, entry: EntryUpdate) -> int:
        """
        Overwrite title, content, mood and tags of an entry.

        Fields missing from the payload are cleared. The date and the creation
        time are never touched.

        Returns:
            The number of rows changed (0 if the id does not exist)
        """

        def _update() -> int:
            with self._sessions.begin() as session:
                result = session.execute(
                    update(EntryRecord)
                    .where(EntryRecord.id == entry_id)
                    .values(
                        title=entry.title,
                        content=entry.content,
                        mood=entry.mood,
                        tags=entry.tags,
                    )
                )
                return result.rowcount

        rows = await self._run("update", _update)
        if rows:
            await self._publish("updated", entry_id)
        return rows

    async def delete(self, entry_id: int) -> int:
        """
        Remove an entry permanently.

        Returns:
            The number of rows removed (0 if the id does not exist)
        """

        def _delete() -> int:
            with self._sessions.begin() as session:
                result = session.execute(
                    delete(EntryRecord).where(EntryRecord.id == entry_id)
                )
                return result.rowcount

        rows = await self._run("delete", _delete)
        if rows:
            await self._publish("deleted", entry_id)
        return rows

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[EntryEvent, None], None]:
        """
        Stream change events to a subscriber.

        This context manager yields an async generator that first produces the
        latest event, then one event per store write.

        Yields:
            An async generator of EntryEvent objects
        """

        async def event_generator() -> AsyncGenerator[EntryEvent, None]:
            async with self._condition:
                last_seen = self._revision
                event = self._last_event
            yield event

            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._revision > last_seen
                        )
                        last_seen = self._revision
                        event = self._last_event
                    # Yield outside the lock so subscribers may write to the store
                    yield event

            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber went away
                return

        yield event_generator()

    # MARK: - Private Helpers

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(func)
        except SQLAlchemyError as e:
            logger.error("Entry %s failed: %s", operation, e)
            raise EntryStoreError(f"Entry {operation} failed: {e}") from e

    async def _publish(self, action: str, entry_id: int) -> None:
        async with self._condition:
            self._revision += 1
            self._last_event = EntryEvent(
                revision=self._revision,
                action=action,
                entry_id=entry_id,
                timestamp=time.time(),
            )
            self._condition.notify_all()
