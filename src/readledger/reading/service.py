"""Book operations with state-machine validation and ledger logging.

This is the entry point for anything that edits books: it loads the current
book, validates the change, and commits the book patch plus its events in a
single write.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import get_config
from ..db.schemas import BookCreate, BookEvent, BookPatch, BookRecord, ReadingState
from ..db.sqlite import Database, get_db
from ..errors import BookNotFound, RatingNotAllowed
from . import state as machine
from .ledger import EventLedger

logger = logging.getLogger(__name__)


class ReadingService:
    """Validated reading operations for one user."""

    def __init__(
        self,
        db: Optional[Database] = None,
        user_id: Optional[str] = None,
        ledger: Optional[EventLedger] = None,
    ):
        """Initialize the service.

        Args:
            db: Database instance
            user_id: Library owner (default: configured user)
            ledger: Event ledger (default: one bound to the same db/user)
        """
        self.db = db or get_db()
        self.user_id = user_id or get_config().user_id
        self.ledger = ledger or EventLedger(db=self.db, user_id=self.user_id)

    # -------------------------------------------------------------------------
    # Library
    # -------------------------------------------------------------------------

    def add_book(self, data: BookCreate, now: Optional[datetime] = None) -> BookRecord:
        """Add a book in any state.

        Raises:
            OutOfRangeProgress: If the starting page is past the last page
        """
        machine.check_page(data.current_page, data.total_pages)
        return self.db.create_book(self.user_id, data, now=now)

    def get_book(self, book_id: str) -> BookRecord:
        """Get a book by ID.

        Raises:
            BookNotFound: If the book does not exist
        """
        book = self.db.get_book(self.user_id, book_id)
        if book is None:
            raise BookNotFound(book_id)
        return book

    def list_books(self, state: Optional[ReadingState] = None) -> list[BookRecord]:
        """List books, optionally filtered by reading state."""
        return self.db.get_books(self.user_id, state=state)

    def find_books(self, query: str, limit: int = 20) -> list[BookRecord]:
        """Find books by ID, or by title/author substring."""
        book = self.db.get_book(self.user_id, query)
        if book is not None:
            return [book]
        return self.db.search_books(self.user_id, query, limit=limit)

    def delete_book(self, book_id: str) -> bool:
        """Delete a book. Its ledger events are kept as orphans."""
        return self.db.delete_book(self.user_id, book_id)

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def change_state(
        self,
        book_id: str,
        target_state: ReadingState,
        now: Optional[datetime] = None,
    ) -> BookRecord:
        """Move a book to a new reading state.

        Raises:
            BookNotFound: If the book does not exist
            InvalidTransition: If the transition is not allowed
            LedgerWriteFailure: If the write fails
        """
        now = now or datetime.now(timezone.utc)
        book = self.get_book(book_id)
        updated = machine.apply(book, target_state, now=now)

        self.ledger.append_state_change(
            book_id,
            book.state,
            updated.state,
            book_patch=machine.changed_fields(book, updated),
            timestamp=now,
        )
        logger.debug("Book %s: %s -> %s", book_id, book.state.value, updated.state.value)
        return updated

    def start_reading(self, book_id: str, now: Optional[datetime] = None) -> BookRecord:
        """Mark a book as in progress."""
        return self.change_state(book_id, ReadingState.IN_PROGRESS, now=now)

    def finish_reading(self, book_id: str, now: Optional[datetime] = None) -> BookRecord:
        """Mark a book as finished."""
        return self.change_state(book_id, ReadingState.FINISHED, now=now)

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def update_progress(
        self,
        book_id: str,
        new_page: int,
        auto_transition: bool = True,
        now: Optional[datetime] = None,
    ) -> BookRecord:
        """Record the page the reader is on.

        With ``auto_transition``, a not-started book moves to in progress when
        the page is past 0, and an in-progress book with a known page count
        moves to finished on reaching the last page. Every resulting event is
        written in the same batch as the book update.

        Raises:
            BookNotFound: If the book does not exist
            OutOfRangeProgress: If the page is out of bounds
            LedgerWriteFailure: If the write fails
        """
        now = now or datetime.now(timezone.utc)
        book = self.get_book(book_id)
        updated = machine.apply_progress(book, new_page, now=now)

        events: list[BookEvent] = [
            self.ledger.progress_update_event(book_id, book.current_page, new_page, now)
        ]

        if auto_transition:
            target = None
            if updated.state == ReadingState.NOT_STARTED and new_page > 0:
                target = ReadingState.IN_PROGRESS
            elif (
                updated.state == ReadingState.IN_PROGRESS
                and updated.has_page_count
                and new_page >= updated.total_pages
            ):
                target = ReadingState.FINISHED

            if target is not None:
                previous_state = updated.state
                updated = machine.apply(updated, target, now=now)
                events.append(
                    self.ledger.state_change_event(book_id, previous_state, target, now)
                )

        self.ledger.commit(book_id, machine.changed_fields(book, updated), events)
        return updated

    # -------------------------------------------------------------------------
    # Ratings and notes
    # -------------------------------------------------------------------------

    def rate_book(
        self, book_id: str, rating: int, now: Optional[datetime] = None
    ) -> BookRecord:
        """Rate a finished book from 1 to 5.

        Raises:
            BookNotFound: If the book does not exist
            RatingNotAllowed: If the book is not finished
            ValueError: If the rating is outside 1-5
        """
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")

        now = now or datetime.now(timezone.utc)
        book = self.get_book(book_id)
        if book.state != ReadingState.FINISHED:
            raise RatingNotAllowed(book_id, book.state.value)

        updated = book.model_copy(update={"rating": rating, "updated_at": now})
        self.ledger.append_rating(
            book_id,
            rating,
            book_patch=machine.changed_fields(book, updated),
            timestamp=now,
        )
        return updated

    def add_note(self, book_id: str, text: str, now: Optional[datetime] = None) -> BookEvent:
        """Attach a free-text note to a book's history."""
        self.get_book(book_id)
        return self.ledger.append_note(book_id, text, timestamp=now)

    # -------------------------------------------------------------------------
    # Manual override
    # -------------------------------------------------------------------------

    def manual_update(
        self,
        book_id: str,
        patch: BookPatch,
        now: Optional[datetime] = None,
    ) -> BookRecord:
        """Correct a book's data, bypassing the transition table.

        A state change made this way is still recorded as a state_change
        event. Page corrections are not logged as progress.

        Raises:
            BookNotFound: If the book does not exist
            OutOfRangeProgress: If the corrected pages are inconsistent
            LedgerWriteFailure: If the write fails
        """
        now = now or datetime.now(timezone.utc)
        book = self.get_book(book_id)
        updated = machine.manual_update(book, patch, now=now)

        events: list[BookEvent] = []
        if updated.state != book.state:
            events.append(
                self.ledger.state_change_event(book_id, book.state, updated.state, now)
            )

        logger.info(
            "Manual update of book %s: %s",
            book_id,
            ", ".join(sorted(patch.model_dump(exclude_unset=True))) or "no fields",
        )
        self.ledger.commit(book_id, machine.changed_fields(book, updated), events)
        return updated
