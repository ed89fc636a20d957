"""
Tests for the techo command-line interface.

Commands run against an in-process app: the CLI's client class is swapped for
one that routes requests through an ASGI transport.
"""

import asyncio
import json

import httpx
from typer.testing import CliRunner

from techo import cli
from techo.client import EntriesClient
from techo.models import EntryCreate
from techo.server import create_app
from techo.store import EntryStore

runner = CliRunner()


class TestCLI:
    def setup_method(self):
        """Set up a fresh store and point the CLI at it."""
        self.entry_store = EntryStore("sqlite://")
        self.entry_store.create_schema()
        app = create_app(self.entry_store)

        class InProcessClient(EntriesClient):
            def __init__(self, base_url: str) -> None:
                super().__init__(
                    http=httpx.AsyncClient(
                        transport=httpx.ASGITransport(app=app), base_url=base_url
                    )
                )
                self._owns_http = True

        self.client_class = InProcessClient

    def teardown_method(self):
        self.entry_store.dispose()

    def _invoke(self, monkeypatch, *args: str, **kwargs):
        monkeypatch.setattr(cli, "EntriesClient", self.client_class)
        return runner.invoke(cli.app, list(args), **kwargs)

    def test_write_and_list(self, monkeypatch):
        """Test writing an entry and listing it back."""
        result = self._invoke(
            monkeypatch,
            "write",
            "--date", "2024-02-01",
            "--title", "Morning Walk",
            "--mood", "happy",
            "--tags", "rain, calm ,",
        )
        assert result.exit_code == 0, result.output
        assert "Saved entry for 2024-02-01" in result.output

        result = self._invoke(monkeypatch, "entries")
        assert result.exit_code == 0, result.output
        assert "1 entries" in result.output
        assert "😊 2月1日  Morning Walk" in result.output
        assert "#rain #calm #" in result.output

    def test_search_json(self, monkeypatch):
        """Test the search filter with JSON output."""
        asyncio.run(self.entry_store.create(EntryCreate(date="2024-02-01", title="Walk")))
        asyncio.run(self.entry_store.create(EntryCreate(date="2024-02-02", title="Tea")))

        result = self._invoke(monkeypatch, "entries", "--search", "walk", "--json")
        assert result.exit_code == 0, result.output

        entries = json.loads(result.output)
        assert [e["title"] for e in entries] == ["Walk"]

    def test_edit_keeps_unspecified_fields(self, monkeypatch):
        """Test that edit only changes the options given."""
        entry_id = asyncio.run(
            self.entry_store.create(
                EntryCreate(date="2024-02-01", title="old", content="body", mood="sad")
            )
        )

        result = self._invoke(monkeypatch, "edit", str(entry_id), "--title", "new")
        assert result.exit_code == 0, result.output

        entry = asyncio.run(self.entry_store.list_entries())[0]
        assert entry.title == "new"
        assert entry.content == "body"
        assert entry.mood == "sad"

    def test_edit_unknown_entry(self, monkeypatch):
        result = self._invoke(monkeypatch, "edit", "99", "--title", "x")
        assert result.exit_code == 1
        assert "No entry with id 99" in result.output

    def test_delete(self, monkeypatch):
        """Test delete with and without confirmation."""
        entry_id = asyncio.run(self.entry_store.create(EntryCreate(date="2024-02-01")))

        result = self._invoke(monkeypatch, "delete", str(entry_id), input="n\n")
        assert result.exit_code == 1
        assert len(asyncio.run(self.entry_store.list_entries())) == 1

        result = self._invoke(monkeypatch, "delete", str(entry_id), "--yes")
        assert result.exit_code == 0, result.output
        assert asyncio.run(self.entry_store.list_entries()) == []

    def test_calendar_marks_days_with_entries(self, monkeypatch):
        asyncio.run(self.entry_store.create(EntryCreate(date="2024-02-01")))

        result = self._invoke(monkeypatch, "calendar", "--year", "2024", "--month", "2")
        assert result.exit_code == 0, result.output

        lines = result.output.splitlines()
        assert lines[0] == "2024年 2月"
        # Thursday column of the first week
        assert lines[2] == " " * 16 + "  1*  2   3"

    def test_write_warns_about_unknown_mood(self, monkeypatch):
        result = self._invoke(
            monkeypatch, "write", "--date", "2024-02-01", "--mood", "grumpy"
        )
        assert result.exit_code == 0, result.output
        assert "Warning: mood 'grumpy'" in result.output
