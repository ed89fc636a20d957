"""
Async HTTP client for the Techo API.

Thin wrapper over httpx that speaks the entry endpoints and decodes responses
into the shared models. Errors are raised as httpx exceptions; deciding what
to do about them is left to the caller.
"""

import json
from collections.abc import AsyncGenerator
from types import TracebackType

import httpx
from httpx_sse import aconnect_sse

from .models import (
    CreatedEntry,
    Entry,
    EntryCreate,
    EntryEvent,
    EntryUpdate,
    MutationResult,
)

DEFAULT_BASE_URL = "http://localhost:3000"


class StreamError(Exception):
    """The server reported an error on the change stream."""


class EntriesClient:
    """
    Client for the ``/api/entries`` endpoints.

    Either pass a configured ``httpx.AsyncClient`` (whose ``base_url`` points at
    the service) or a base URL, in which case the client owns its connection
    pool and should be used as an async context manager.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url)

    async def __aenter__(self) -> "EntriesClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def list_entries(self) -> list[Entry]:
        response = await self._http.get("/api/entries")
        response.raise_for_status()
        return [Entry.model_validate(item) for item in response.json()]

    async def create_entry(self, entry: EntryCreate) -> int:
        response = await self._http.post("/api/entries", json=entry.model_dump())
        response.raise_for_status()
        return CreatedEntry.model_validate(response.json()).id

    async def update_entry(self, entry_id: int, entry: EntryUpdate) -> MutationResult:
        response = await self._http.put(
            f"/api/entries/{entry_id}", json=entry.model_dump()
        )
        response.raise_for_status()
        return MutationResult.model_validate(response.json())

    async def delete_entry(self, entry_id: int) -> MutationResult:
        response = await self._http.delete(f"/api/entries/{entry_id}")
        response.raise_for_status()
        return MutationResult.model_validate(response.json())

    async def stream_changes(self) -> AsyncGenerator[EntryEvent, None]:
        """
        Follow the server's change feed.

        Yields:
            EntryEvent objects, starting with the latest change

        Raises:
            StreamError: If the server sends an error event
        """
        async with aconnect_sse(
            self._http, "GET", "/api/entries/stream", timeout=None
        ) as event_source:
            event_source.response.raise_for_status()
            async for sse in event_source.aiter_sse():
                if sse.event == "error":
                    error_data = json.loads(sse.data)
                    raise StreamError(error_data.get("error", "Unknown error"))
                yield EntryEvent.model_validate_json(sse.data)
