"""
Command-line interface for the Techo journaling service.
"""

import asyncio
import json
import sys
from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import Any, Optional

import httpx
import typer

from .client import DEFAULT_BASE_URL, EntriesClient, StreamError
from .log import configure_logging
from .models import Entry, EntryEvent, EntryFields, find_problems, mood_style
from .viewmodel import JournalViewModel
from .views import format_entry_date, parse_tags

WEEKDAY_HEADER = ["日", "一", "二", "三", "四", "五", "六"]

app = typer.Typer(help="Techo journal CLI tools")

base_url_option = typer.Option(
    DEFAULT_BASE_URL,
    "--url",
    "-u",
    envvar="TECHO_URL",
    help="Base URL of the Techo service",
)


# MARK: - CLI Entry Points


def main() -> None:
    """Entry point for the techo command."""
    app()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    configure_logging("debug" if verbose else "warning", stream=sys.stderr)


# MARK: - Commands


@app.command("entries")
def list_entries(
    search: str = typer.Option("", "--search", "-s", help="Filter by title or content"),
    base_url: str = base_url_option,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """List journal entries, newest first."""

    async def _list(vm: JournalViewModel) -> None:
        if not await vm.refresh():
            raise typer.Exit(1)
        vm.search(search)
        entries = vm.filtered_entries

        if json_output:
            print(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
            return

        print(f"{len(entries)} entries")
        for entry in entries:
            print(_format_entry(entry))

    _run_with_view_model(_list, base_url)


@app.command()
def calendar(
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year to show"),
    month: Optional[int] = typer.Option(
        None, "--month", "-m", min=1, max=12, help="Month to show"
    ),
    base_url: str = base_url_option,
) -> None:
    """Show a month calendar; days with entries are marked with *."""

    async def _calendar(vm: JournalViewModel) -> None:
        if not await vm.refresh():
            raise typer.Exit(1)
        vm.show_month(year or vm.view_year, month or vm.view_month)

        print(f"{vm.view_year}年 {vm.view_month}月")
        print(" ".join(f"{d:>3}" for d in WEEKDAY_HEADER))

        row = []
        for cell in vm.calendar_cells:
            if cell.day is None:
                row.append("    ")
            else:
                mark = "*" if cell.has_entry else ("." if cell.is_today else " ")
                row.append(f"{cell.day:>3}{mark}")
            if len(row) == 7:
                print("".join(row).rstrip())
                row = []
        if row:
            print("".join(row).rstrip())

    _run_with_view_model(_calendar, base_url)


@app.command()
def write(
    date: Optional[str] = typer.Option(
        None, "--date", "-d", help="Entry date, YYYY-MM-DD (default today)"
    ),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Entry title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="Entry text"),
    mood: Optional[str] = typer.Option(None, "--mood", "-m", help="Mood (default calm)"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tags"),
    base_url: str = base_url_option,
) -> None:
    """Write a new journal entry."""

    async def _write(vm: JournalViewModel) -> None:
        vm.compose(date)
        fields = _given(title=title, content=content, mood=mood, tags=tags)
        draft = vm.edit_draft(**fields)
        _warn_problems(draft)

        if not await vm.save():
            raise typer.Exit(1)
        print(f"Saved entry for {draft.date}")

    _run_with_view_model(_write, base_url)


@app.command()
def edit(
    entry_id: int = typer.Argument(..., help="Id of the entry to edit"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New text"),
    mood: Optional[str] = typer.Option(None, "--mood", "-m", help="New mood"),
    tags: Optional[str] = typer.Option(None, "--tags", help="New comma-separated tags"),
    base_url: str = base_url_option,
) -> None:
    """Change an existing entry; options not given keep their value."""

    async def _edit(vm: JournalViewModel) -> None:
        if not await vm.refresh():
            raise typer.Exit(1)

        entry = next((e for e in vm.entries if e.id == entry_id), None)
        if entry is None:
            print(f"Error: No entry with id {entry_id}")
            raise typer.Exit(1)

        vm.open_entry(entry)
        draft = vm.edit_draft(**_given(title=title, content=content, mood=mood, tags=tags))
        _warn_problems(draft)

        if not await vm.save():
            raise typer.Exit(1)
        print(f"Updated entry {entry_id}")

    _run_with_view_model(_edit, base_url)


@app.command()
def delete(
    entry_id: int = typer.Argument(..., help="Id of the entry to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    base_url: str = base_url_option,
) -> None:
    """Delete an entry permanently."""

    def _confirm(entry_id: int) -> bool:
        return yes or typer.confirm(f"Delete entry {entry_id}?")

    async def _delete(vm: JournalViewModel) -> None:
        if not await vm.delete(entry_id, confirm=_confirm):
            raise typer.Exit(1)
        print(f"Deleted entry {entry_id}")

    _run_with_view_model(_delete, base_url)


@app.command()
def watch(base_url: str = base_url_option) -> None:
    """Follow entry changes in real-time."""

    async def _watch() -> None:
        print(f"Watching {base_url}/api/entries/stream... (Ctrl+C to stop)")
        async with httpx.AsyncClient(base_url=base_url) as http:
            client = EntriesClient(http=http)
            async for event in client.stream_changes():
                print(_format_event(event))

    _run_with_error_handling(_watch(), base_url)


# MARK: - Private Helpers


def _given(**fields: str | None) -> dict[str, str]:
    """Only the options the user actually passed."""
    return {name: value for name, value in fields.items() if value is not None}


def _warn_problems(draft: EntryFields) -> None:
    for problem in find_problems(draft):
        print(f"Warning: {problem}", file=sys.stderr)


def _format_entry(entry: Entry) -> str:
    style = mood_style(entry.mood)
    lines = [
        f"[{entry.id}] {style.glyph} {format_entry_date(entry.date)}  {entry.title or '无标题'}"
    ]
    if entry.content:
        lines.append(f"    {entry.content}")
    tags = parse_tags(entry.tags)
    if tags:
        lines.append("    " + " ".join(f"#{tag}" for tag in tags))
    return "\n".join(lines)


def _format_event(event: EntryEvent) -> str:
    """Format an event with optional timestamp."""
    text = f"#{event.revision} {event.action}"
    if event.entry_id is not None:
        text += f" entry {event.entry_id}"
    if not event.timestamp:
        return text

    dt = datetime.fromtimestamp(event.timestamp)
    return f"{dt.strftime('%H:%M:%S')} > {text}"


def _run_with_view_model(
    func: Callable[[JournalViewModel], Coroutine[Any, Any, None]], base_url: str
) -> None:
    """Run a command body against a view model connected to the service."""

    async def _main() -> None:
        async with EntriesClient(base_url) as client:
            await func(JournalViewModel(client))

    _run_with_error_handling(_main(), base_url)


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except typer.Exit:
        raise
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except StreamError as e:
        print(f"Server error: {e}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    main()
