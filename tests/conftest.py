"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readledger, including temporary
databases, services bound to them, and sample books and events.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from readledger.config import reset_config
from readledger.db.schemas import (
    BookCreate,
    BookEvent,
    BookRecord,
    ProgressUpdatePayload,
    ReadingState,
    StateChangePayload,
)
from readledger.db.sqlite import Database, reset_db
from readledger.reading import EventLedger, ReadingService

TEST_USER = "reader-1"

# Fixed clock so month buckets are predictable
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db(temp_db_path: Path, tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database instance."""
    # Reset any global state
    reset_db()
    reset_config()

    os.environ["READLEDGER_DB_PATH"] = str(temp_db_path)
    os.environ["READLEDGER_GOALS_FILE"] = str(tmp_path / "goals.json")
    os.environ["READLEDGER_USER_ID"] = TEST_USER

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    reset_db()
    reset_config()
    for var in ("READLEDGER_DB_PATH", "READLEDGER_GOALS_FILE", "READLEDGER_USER_ID"):
        os.environ.pop(var, None)


@pytest.fixture
def memory_db() -> Database:
    """Private in-memory database."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def ledger(db: Database) -> EventLedger:
    """Event ledger bound to the test database."""
    return EventLedger(db=db, user_id=TEST_USER)


@pytest.fixture
def service(db: Database, ledger: EventLedger) -> ReadingService:
    """Reading service bound to the test database."""
    return ReadingService(db=db, user_id=TEST_USER, ledger=ledger)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="The Left Hand of Darkness",
        author="Ursula K. Le Guin",
        genre="Science Fiction",
        total_pages=304,
        is_owned=True,
        isbn="9780441478125",
    )


@pytest.fixture
def sample_book_minimal() -> BookCreate:
    """Create minimal book data (only required fields)."""
    return BookCreate(title="Minimal Book", author="Test Author")


@pytest.fixture
def created_book(service: ReadingService, sample_book_data: BookCreate) -> BookRecord:
    """Create and return a not-started book in the database."""
    return service.add_book(sample_book_data, now=NOW)


@pytest.fixture
def reading_book(service: ReadingService, created_book: BookRecord) -> BookRecord:
    """A book that has been started."""
    return service.start_reading(created_book.id, now=NOW)


# ============================================================================
# Plain value builders
# ============================================================================


def make_book(
    book_id: str = "book-1",
    genre: str = "Fiction",
    state: ReadingState = ReadingState.IN_PROGRESS,
    **kwargs,
) -> BookRecord:
    """Build a BookRecord without touching the database."""
    data = {
        "id": book_id,
        "user_id": TEST_USER,
        "title": f"Title {book_id}",
        "author": "Some Author",
        "genre": genre,
        "state": state,
        "total_pages": 300,
        "added_at": NOW,
        "updated_at": NOW,
    }
    data.update(kwargs)
    return BookRecord(**data)


def progress(book_id: str, previous: int, new: int, timestamp: datetime = NOW) -> BookEvent:
    """Build a progress_update event."""
    return BookEvent(
        book_id=book_id,
        user_id=TEST_USER,
        timestamp=timestamp,
        payload=ProgressUpdatePayload(previous_page=previous, new_page=new),
    )


def state_change(
    book_id: str,
    previous: ReadingState,
    new: ReadingState,
    timestamp: datetime = NOW,
) -> BookEvent:
    """Build a state_change event."""
    return BookEvent(
        book_id=book_id,
        user_id=TEST_USER,
        timestamp=timestamp,
        payload=StateChangePayload(previous_state=previous, new_state=new),
    )
