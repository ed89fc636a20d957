"""
Journal view model.

Client-side state for a journal UI: the cached entry list, the search query,
the viewed calendar month and the entry being edited. Derived views are
recomputed from that state on every access. Mutations go to the server and
are followed by a full re-fetch of the entry list.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from enum import Enum

import httpx
from pydantic import BaseModel

from .client import EntriesClient
from .models import DEFAULT_MOOD, Entry, EntryCreate, EntryDraft, EntryUpdate
from .views import (
    filter_entries,
    index_by_date,
    iso_day,
    month_grid,
    shift_month,
)

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    IDLE = "idle"
    DRAFTING_NEW = "drafting_new"
    DRAFTING_EXISTING = "drafting_existing"
    SAVING = "saving"


class CalendarCell(BaseModel):
    """One cell of the month view; blank cells have no day."""

    day: int | None = None
    date: str | None = None
    has_entry: bool = False
    is_today: bool = False


ConfirmDelete = Callable[[int], bool | Awaitable[bool]]


class JournalViewModel:
    """
    State container behind the journal UI.

    The entry list is replaced wholesale by each fetch. Every fetch takes a
    sequence number and a response is dropped when a newer fetch has been
    issued since, so a slow stale response never overwrites fresher data.
    Network failures are logged and leave the state untouched.
    """

    def __init__(
        self,
        client: EntriesClient,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._today = today
        self._fetch_seq = 0

        self.entries: list[Entry] = []
        self.search_query = ""
        self.draft: EntryDraft | None = None
        self.editor_state = EditorState.IDLE

        now = today()
        self.view_year = now.year
        self.view_month = now.month

    # MARK: - Derived views

    @property
    def editor_open(self) -> bool:
        return self.editor_state is not EditorState.IDLE

    @property
    def filtered_entries(self) -> list[Entry]:
        return filter_entries(self.entries, self.search_query)

    @property
    def entries_by_date(self) -> dict[str, list[Entry]]:
        return index_by_date(self.entries)

    @property
    def calendar_cells(self) -> list[CalendarCell]:
        index = self.entries_by_date
        today = self._today().isoformat()

        cells = []
        for day in month_grid(self.view_year, self.view_month):
            if day is None:
                cells.append(CalendarCell())
                continue
            day_str = iso_day(self.view_year, self.view_month, day)
            cells.append(
                CalendarCell(
                    day=day,
                    date=day_str,
                    has_entry=day_str in index,
                    is_today=day_str == today,
                )
            )
        return cells

    # MARK: - Navigation and search

    def search(self, query: str) -> None:
        self.search_query = query

    def next_month(self) -> None:
        self.view_year, self.view_month = shift_month(self.view_year, self.view_month, 1)

    def previous_month(self) -> None:
        self.view_year, self.view_month = shift_month(
            self.view_year, self.view_month, -1
        )

    def show_month(self, year: int, month: int) -> None:
        self.view_year, self.view_month = shift_month(year, month, 0)

    # MARK: - Editing

    def compose(self, entry_date: str | None = None) -> EntryDraft:
        """Open the editor on a new entry for the given date (today by default)."""
        self.draft = EntryDraft(
            date=entry_date or self._today().isoformat(),
            mood=DEFAULT_MOOD.value,
        )
        self.editor_state = EditorState.DRAFTING_NEW
        return self.draft

    def open_entry(self, entry: Entry) -> EntryDraft:
        """Open the editor on an existing entry."""
        self.draft = EntryDraft.model_validate(entry.model_dump())
        self.editor_state = EditorState.DRAFTING_EXISTING
        return self.draft

    def select_day(self, day: int) -> EntryDraft:
        """
        Handle a click on a calendar day of the viewed month.

        Opens the first entry of that day if there is one, otherwise starts a
        new entry dated that day.
        """
        day_str = iso_day(self.view_year, self.view_month, day)
        existing = self.entries_by_date.get(day_str)
        if existing:
            return self.open_entry(existing[0])
        return self.compose(day_str)

    def edit_draft(self, **fields: str | None) -> EntryDraft:
        """Change fields of the current draft."""
        if self.draft is None:
            raise RuntimeError("No entry is being edited")
        self.draft = self.draft.model_copy(update=fields)
        return self.draft

    def close_editor(self) -> None:
        self.draft = None
        self.editor_state = EditorState.IDLE

    # MARK: - Server round-trips

    async def refresh(self) -> bool:
        """
        Re-fetch the entry list.

        Returns:
            True if the fetched list was applied
        """
        self._fetch_seq += 1
        seq = self._fetch_seq

        try:
            entries = await self._client.list_entries()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch entries: %s", e)
            return False

        if seq != self._fetch_seq:
            logger.debug("Dropping stale entry list (fetch %s, latest %s)", seq, self._fetch_seq)
            return False

        self.entries = entries
        return True

    async def save(self) -> bool:
        """
        Send the draft to the server as a create or an update.

        On success the editor closes and the list is re-fetched. On failure
        the editor stays open on the same draft.

        Returns:
            True if the server accepted the draft
        """
        if self.draft is None:
            return False

        draft = self.draft
        previous_state = self.editor_state
        self.editor_state = EditorState.SAVING

        try:
            if draft.id is None:
                payload = EntryCreate.model_validate(draft.model_dump(exclude={"id"}))
                if not payload.date:
                    payload.date = self._today().isoformat()
                await self._client.create_entry(payload)
            else:
                payload = EntryUpdate.model_validate(
                    draft.model_dump(exclude={"id", "date"})
                )
                await self._client.update_entry(draft.id, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to save entry: %s", e)
            self.editor_state = previous_state
            return False

        self.close_editor()
        await self.refresh()
        return True

    async def delete(self, entry_id: int, confirm: ConfirmDelete | None = None) -> bool:
        """
        Delete an entry after an optional confirmation.

        Args:
            entry_id: The entry to delete
            confirm: Called with the id; a falsy answer cancels the delete

        Returns:
            True if the server accepted the delete
        """
        if confirm is not None:
            answer = confirm(entry_id)
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                return False

        try:
            await self._client.delete_entry(entry_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to delete entry: %s", e)
            return False

        await self.refresh()
        return True
