"""
FastAPI server for the Techo service.

This module implements the HTTP API over the entry store: listing, creating,
updating and deleting journal entries, plus a Server-Sent Events feed that
tells clients when the entry set has changed.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse

from .config import load_settings
from .log import configure_logging
from .models import CreatedEntry, Entry, EntryCreate, EntryUpdate, MutationResult
from .store import EntryStore, EntryStoreError

logger = logging.getLogger(__name__)


def create_app(entry_store: EntryStore) -> FastAPI:
    """
    Create a FastAPI application with the given entry store.

    Args:
        entry_store: The EntryStore instance to use for the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        # Startup fails here if the database cannot be opened
        await entry_store.initialize()
        yield
        entry_store.dispose()

    app = FastAPI(
        title="Techo",
        description="A personal journaling service",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "techo"}

    @app.get("/api/entries")
    async def list_entries() -> list[Entry]:
        """
        Get all entries.

        Returns:
            Every entry, newest date first
        """
        try:
            return await entry_store.list_entries()
        except EntryStoreError as e:
            raise HTTPException(status_code=500, detail=f"Failed to list entries: {e}")

    @app.post("/api/entries")
    async def create_entry(entry: EntryCreate) -> CreatedEntry:
        """
        Create a new entry.

        Args:
            entry: The new entry's fields

        Returns:
            The id assigned to the entry
        """
        try:
            entry_id = await entry_store.create(entry)
        except EntryStoreError as e:
            raise HTTPException(status_code=500, detail=f"Failed to create entry: {e}")
        logger.info("Created entry %s for %s", entry_id, entry.date)
        return CreatedEntry(id=entry_id)

    @app.put("/api/entries/{entry_id}")
    async def update_entry(entry_id: int, entry: EntryUpdate) -> MutationResult:
        """
        Replace the title, content, mood and tags of an entry.

        An unknown id still succeeds, with ``rows_affected`` set to 0.
        """
        try:
            rows = await entry_store.update(entry_id, entry)
        except EntryStoreError as e:
            raise HTTPException(status_code=500, detail=f"Failed to update entry: {e}")
        if not rows:
            logger.debug("Update matched no entry with id %s", entry_id)
        return MutationResult(rows_affected=rows)

    @app.delete("/api/entries/{entry_id}")
    async def delete_entry(entry_id: int) -> MutationResult:
        """
        Delete an entry.

        An unknown id still succeeds, with ``rows_affected`` set to 0.
        """
        try:
            rows = await entry_store.delete(entry_id)
        except EntryStoreError as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete entry: {e}")
        if rows:
            logger.info("Deleted entry %s", entry_id)
        return MutationResult(rows_affected=rows)

    @app.get("/api/entries/stream")
    async def stream_changes() -> StreamingResponse:
        """
        Stream entry changes via Server-Sent Events.

        The latest change is sent immediately upon connection, then one event
        per create, update or delete.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for entry changes."""
            try:
                async with entry_store.stream() as changes:
                    async for change in changes:
                        data = json.dumps(change.model_dump())
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Change stream failed")
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


settings = load_settings()
app = create_app(EntryStore(settings.database_url))


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    configure_logging(settings.log_level)
    logger.info("Starting techo on http://%s:%s", settings.host, settings.port)
    uvicorn.run(
        "techo.server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
