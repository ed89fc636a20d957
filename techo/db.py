"""
Relational storage setup for the Techo service.

Holds the SQLAlchemy table mapping for journal entries and the engine and
session factories the entry store runs its statements through.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Engine, Integer, Text, create_engine, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class EntryRecord(Base):
    """One row of the ``entries`` table."""

    __tablename__ = "entries"
    # AUTOINCREMENT keeps sqlite from reusing the ids of deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mood: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # comma-separated
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )

    def __repr__(self) -> str:
        return f"<EntryRecord(id={self.id}, date={self.date}, title={self.title})>"


def make_engine(database_url: str) -> Engine:
    """
    Create the engine for the given database URL.

    Statements run in worker threads, so sqlite connections are allowed to
    cross threads. An in-memory sqlite database is pinned to one connection,
    otherwise every connection would see its own empty database.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    logger.debug("Using sqlite database %s", database_url)
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)
