"""SQLAlchemy ORM models for the local SQLite database.

Tables:
- books: Book records, one row per book per user
- events: Append-only reading ledger
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import ReadingState


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class Book(Base):
    """Book model - a book in one user's library."""

    __tablename__ = "books"

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    state: Mapped[str] = mapped_column(
        String(20), default=ReadingState.NOT_STARTED.value, index=True
    )
    genre: Mapped[Optional[str]] = mapped_column(String(200), index=True)
    is_owned: Mapped[bool] = mapped_column(Boolean, default=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer)

    # Progress
    current_page: Mapped[int] = mapped_column(Integer, default=0)
    total_pages: Mapped[int] = mapped_column(Integer, default=0)

    # Metadata
    isbn: Mapped[Optional[str]] = mapped_column(String(13), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    published_date: Mapped[Optional[str]] = mapped_column(String(10))

    # Timestamps (ISO datetimes, UTC)
    added_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    started_at: Mapped[Optional[str]] = mapped_column(String(32))
    finished_at: Mapped[Optional[str]] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', state={self.state})>"


class LedgerEvent(Base):
    """Ledger event model - one immutable reading event.

    ``book_id`` is deliberately not a foreign key: events outlive the books
    they reference.
    """

    __tablename__ = "events"
    __table_args__ = (Index("ix_events_user_timestamp", "user_id", "timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False)
    # Insertion order, orders events that share a timestamp
    seq: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON

    def __repr__(self) -> str:
        return f"<LedgerEvent(id={self.id}, book_id={self.book_id}, type={self.type})>"

    def get_payload(self) -> dict:
        """Get payload as dict."""
        return json.loads(self.payload)

    def set_payload(self, payload: dict) -> None:
        """Set payload from dict."""
        self.payload = json.dumps(payload)
