"""
Derived journal views.

Pure functions over the cached entry list: the search filter, the date index,
the calendar month grid and the small formatting helpers the UI needs.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from .models import Entry


def filter_entries(entries: Iterable[Entry], query: str) -> list[Entry]:
    """Entries whose title or content contains ``query``, ignoring case."""
    if not query:
        return list(entries)

    needle = query.lower()
    return [
        e
        for e in entries
        if needle in (e.title or "").lower() or needle in (e.content or "").lower()
    ]


def index_by_date(entries: Iterable[Entry]) -> dict[str, list[Entry]]:
    """Group entries by their date string, keeping list order within a day."""
    index: dict[str, list[Entry]] = {}
    for entry in entries:
        index.setdefault(entry.date, []).append(entry)
    return index


def shift_month(year: int, month: int, step: int) -> tuple[int, int]:
    """Move ``step`` months from year/month, rolling over year boundaries."""
    years, month_index = divmod(month - 1 + step, 12)
    return year + years, month_index + 1


def last_day_of_month(year: int, month: int) -> int:
    # The day before the first of next month
    next_year, next_month = shift_month(year, month, 1)
    return (date(next_year, next_month, 1) - timedelta(days=1)).day


def month_grid(year: int, month: int) -> list[int | None]:
    """
    Cells of a Sunday-first calendar month.

    Leading ``None`` blanks pad the first week up to the weekday of day 1,
    followed by the day numbers of the month.

    Example:
        February 2024 starts on a Thursday, so the grid is four blanks
        followed by 1..29.
    """
    # date.weekday() counts from Monday
    leading = (date(year, month, 1).weekday() + 1) % 7
    cells: list[int | None] = [None] * leading
    cells.extend(range(1, last_day_of_month(year, month) + 1))
    return cells


def iso_day(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def parse_tags(tags: str | None) -> list[str]:
    """
    Split a comma-separated tag string for display.

    Segments are trimmed but never dropped, so ``"rain, calm ,"`` gives
    ``["rain", "calm", ""]``.
    """
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",")]


def format_entry_date(date_str: str) -> str:
    """Short display form of an entry date, e.g. ``2月1日``."""
    try:
        d = date.fromisoformat(date_str)
    except ValueError:
        return date_str
    return f"{d.month}月{d.day}日"
