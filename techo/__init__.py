"""
Techo - A personal journaling service with a terminal client.

This package provides a small REST API persisting dated diary entries to a
local relational store, and a journal view model that caches those entries
and derives the calendar, date index and search views a UI renders.
"""

__version__ = "0.1.0"
