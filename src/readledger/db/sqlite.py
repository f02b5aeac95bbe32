"""SQLite database operations.

Handles database connection, session management, book CRUD and the
atomic book + ledger write.
"""

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import BookNotFound, LedgerWriteFailure
from .models import Base, Book, LedgerEvent
from .schemas import BookCreate, BookEvent, BookRecord, ReadingState

logger = logging.getLogger(__name__)

# Columns a book patch may touch
BOOK_COLUMNS = frozenset(
    {
        "title",
        "author",
        "state",
        "genre",
        "is_owned",
        "rating",
        "current_page",
        "total_pages",
        "isbn",
        "description",
        "published_date",
        "updated_at",
        "started_at",
        "finished_at",
    }
)


def to_iso(value: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO string.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _column_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, ReadingState):
        return value.value
    return value


def event_from_row(row: LedgerEvent) -> BookEvent:
    """Convert a stored ledger row into a BookEvent."""
    return BookEvent(
        id=row.id,
        book_id=row.book_id,
        user_id=row.user_id,
        timestamp=datetime.fromisoformat(row.timestamp),
        payload=row.get_payload(),
    )


class Database:
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     READLEDGER_DB_PATH env var or default location.
                     ":memory:" gives a private in-memory database.
        """
        if db_path is None:
            db_path = os.environ.get(
                "READLEDGER_DB_PATH",
                str(Path.home() / ".readledger" / "ledger.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Book Operations
    # ========================================================================

    def create_book(
        self,
        user_id: str,
        book: BookCreate,
        now: Optional[datetime] = None,
    ) -> BookRecord:
        """Create a new book record.

        Books added directly as in progress or finished get the matching
        started/finished timestamps so date-based stats can see them.
        """
        now_iso = to_iso(now or datetime.now(timezone.utc))
        state = book.state

        db_book = Book(
            user_id=user_id,
            title=book.title,
            author=book.author,
            state=state.value,
            genre=book.genre,
            is_owned=book.is_owned,
            rating=book.rating,
            current_page=book.current_page,
            total_pages=book.total_pages,
            isbn=book.isbn,
            description=book.description,
            published_date=book.published_date,
            added_at=now_iso,
            updated_at=now_iso,
            started_at=now_iso if state != ReadingState.NOT_STARTED else None,
            finished_at=now_iso if state == ReadingState.FINISHED else None,
        )

        with self.get_session() as s:
            s.add(db_book)
            s.flush()
            record = BookRecord.model_validate(db_book)

        logger.info("Added book %s (%s) for user %s", record.id, record.title, user_id)
        return record

    def get_book(
        self, user_id: str, book_id: str, session: Optional[Session] = None
    ) -> Optional[BookRecord]:
        """Get a book by ID."""

        def _get(s: Session) -> Optional[BookRecord]:
            book = s.get(Book, book_id)
            if book is None or book.user_id != user_id:
                return None
            return BookRecord.model_validate(book)

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def get_books(
        self,
        user_id: str,
        state: Optional[ReadingState] = None,
        session: Optional[Session] = None,
    ) -> list[BookRecord]:
        """Get a user's books ordered by title, optionally filtered by state."""

        def _get(s: Session) -> list[BookRecord]:
            stmt = select(Book).where(Book.user_id == user_id)
            if state is not None:
                stmt = stmt.where(Book.state == state.value)
            stmt = stmt.order_by(Book.title)
            return [BookRecord.model_validate(b) for b in s.execute(stmt).scalars().all()]

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def search_books(self, user_id: str, query: str, limit: int = 20) -> list[BookRecord]:
        """Search books by title or author."""
        pattern = f"%{query}%"
        with self.get_session() as s:
            stmt = (
                select(Book)
                .where(Book.user_id == user_id)
                .where((Book.title.ilike(pattern)) | (Book.author.ilike(pattern)))
                .order_by(Book.title)
                .limit(limit)
            )
            return [BookRecord.model_validate(b) for b in s.execute(stmt).scalars().all()]

    def read_all_books(self, user_id: str) -> list[BookRecord]:
        """Snapshot of the full book set for a user."""
        return self.get_books(user_id)

    def delete_book(self, user_id: str, book_id: str) -> bool:
        """Delete a book record.

        Ledger events referencing the book are kept.
        """
        with self.get_session() as s:
            book = s.get(Book, book_id)
            if book is None or book.user_id != user_id:
                return False
            s.delete(book)

        logger.info("Deleted book %s for user %s", book_id, user_id)
        return True

    # ========================================================================
    # Ledger Operations
    # ========================================================================

    def atomic_write(
        self,
        user_id: str,
        book_id: str,
        book_patch: Optional[dict[str, Any]],
        events: Sequence[BookEvent],
    ) -> None:
        """Apply a book patch and insert ledger events in one transaction.

        Either the patch and every event are committed, or nothing is.

        Args:
            user_id: Owner of the book and events
            book_id: Book being mutated
            book_patch: Column values to set on the book (None for no change)
            events: Events to append

        Raises:
            BookNotFound: If a patch is given and the book does not exist
            LedgerWriteFailure: If the storage layer rejects the batch
        """
        if book_patch:
            unknown = set(book_patch) - BOOK_COLUMNS
            if unknown:
                raise ValueError(f"Unknown book fields: {sorted(unknown)}")

        try:
            with self.get_session() as s:
                if book_patch:
                    book = s.get(Book, book_id)
                    if book is None or book.user_id != user_id:
                        raise BookNotFound(book_id)
                    for field, value in book_patch.items():
                        setattr(book, field, _column_value(value))

                next_seq = (s.scalar(select(func.max(LedgerEvent.seq))) or 0) + 1
                for seq, event in enumerate(events, start=next_seq):
                    row = LedgerEvent(
                        id=event.id,
                        seq=seq,
                        user_id=user_id,
                        book_id=event.book_id,
                        type=event.type.value,
                        timestamp=to_iso(event.timestamp),
                    )
                    row.set_payload(event.payload.model_dump(mode="json"))
                    s.add(row)
        except SQLAlchemyError as e:
            logger.error("Ledger write for book %s failed: %s", book_id, e)
            raise LedgerWriteFailure(f"Failed to write book {book_id}: {e}") from e

        logger.info(
            "Committed %d event(s) for book %s (%s)",
            len(events),
            book_id,
            ", ".join(e.type.value for e in events) or "no events",
        )

    def get_events(
        self,
        user_id: str,
        book_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[BookEvent]:
        """Get ledger events newest first.

        Args:
            user_id: Owner of the events
            book_id: Only events for this book (optional)
            limit: Truncate to this many events (optional)
        """
        with self.get_session() as s:
            stmt = select(LedgerEvent).where(LedgerEvent.user_id == user_id)
            if book_id is not None:
                stmt = stmt.where(LedgerEvent.book_id == book_id)
            stmt = stmt.order_by(LedgerEvent.timestamp.desc(), LedgerEvent.seq.desc())
            if limit is not None:
                stmt = stmt.limit(limit)
            return [event_from_row(row) for row in s.execute(stmt).scalars().all()]

    def read_all_events(self, user_id: str) -> list[BookEvent]:
        """Snapshot of the full ledger for a user, newest first."""
        return self.get_events(user_id)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
