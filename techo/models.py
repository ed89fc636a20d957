"""
Shared data models for the Techo service.

This module defines the core domain models used across multiple layers
of the application (storage, API, view model, CLI).
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MoodType(str, Enum):
    """The fixed set of moods the UI offers."""

    HAPPY = "happy"
    CALM = "calm"
    PEACEFUL = "peaceful"
    EXCITED = "excited"
    TIRED = "tired"
    SAD = "sad"


DEFAULT_MOOD = MoodType.CALM


class MoodStyle(BaseModel):
    """Presentation metadata for a mood."""

    type: MoodType | None = None
    label: str
    glyph: str
    color: str


MOODS: tuple[MoodStyle, ...] = (
    MoodStyle(type=MoodType.HAPPY, label="开心", glyph="😊", color="bg-yellow-100"),
    MoodStyle(type=MoodType.CALM, label="平静", glyph="😌", color="bg-blue-100"),
    MoodStyle(type=MoodType.PEACEFUL, label="安宁", glyph="🌿", color="bg-green-100"),
    MoodStyle(type=MoodType.EXCITED, label="激动", glyph="✨", color="bg-orange-100"),
    MoodStyle(type=MoodType.TIRED, label="疲惫", glyph="😴", color="bg-purple-100"),
    MoodStyle(type=MoodType.SAD, label="难过", glyph="☁️", color="bg-gray-100"),
)

UNKNOWN_MOOD = MoodStyle(label="", glyph="😶", color="bg-gray-100")


def mood_style(mood: str | None) -> MoodStyle:
    """Look up presentation metadata, falling back for unknown moods."""
    for style in MOODS:
        if style.type is not None and style.type.value == mood:
            return style
    return UNKNOWN_MOOD


# MARK: - Entries


class EntryFields(BaseModel):
    """The freely rewritable part of an entry."""

    title: str | None = Field(None, description="Optional entry title")
    content: str | None = Field(None, description="Optional free text")
    mood: str | None = Field(None, description="Mood name, normally a MoodType")
    tags: str | None = Field(None, description="Comma-separated labels")


class EntryCreate(EntryFields):
    """Payload for creating an entry."""

    date: str | None = Field(None, description="Calendar date as YYYY-MM-DD")


class EntryUpdate(EntryFields):
    """Payload for replacing the mutable fields of an entry."""


class Entry(EntryFields):
    """A persisted journal entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Store-assigned identifier")
    date: str = Field(..., description="Calendar date as YYYY-MM-DD")
    created_at: datetime | None = Field(None, description="Insertion time (UTC)")


class EntryDraft(EntryFields):
    """An in-progress edit; carries an id only when editing an existing entry."""

    id: int | None = None
    date: str | None = None


class CreatedEntry(BaseModel):
    """Response model for entry creation."""

    id: int


class MutationResult(BaseModel):
    """Response model for update and delete.

    ``rows_affected`` is 0 when the id did not exist; the call still succeeds.
    """

    success: bool = True
    rows_affected: int = 0


class EntryEvent(BaseModel):
    """A change notification published by the entry store."""

    revision: int = Field(..., description="Monotonic count of store writes")
    action: Literal["snapshot", "created", "updated", "deleted"]
    entry_id: int | None = None
    timestamp: float | None = Field(None, description="Unix timestamp of the change")


# MARK: - Validation


def find_problems(draft: EntryFields) -> list[str]:
    """
    Check an entry's date and mood against the formats the UI produces.

    Storage accepts any text, so this is only an optional check at the edges.

    Returns:
        A list of human-readable problems, empty when the entry looks fine
    """
    problems = []

    entry_date = getattr(draft, "date", None)
    if entry_date is not None:
        try:
            datetime.strptime(entry_date, "%Y-%m-%d")
            # strptime also accepts unpadded months and days
            if len(entry_date) != 10:
                raise ValueError(entry_date)
        except ValueError:
            problems.append(f"date {entry_date!r} is not a YYYY-MM-DD calendar date")

    if draft.mood is not None and mood_style(draft.mood) is UNKNOWN_MOOD:
        choices = ", ".join(m.value for m in MoodType)
        problems.append(f"mood {draft.mood!r} is not one of: {choices}")

    return problems
