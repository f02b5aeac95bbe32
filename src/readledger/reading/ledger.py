"""Append-only reading event ledger.

Every append is committed in the same transaction as the book mutation that
caused it. The ledger offers no way to edit or remove an individual event.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from ..config import get_config
from ..db.schemas import (
    BookEvent,
    EventType,
    NoteAddedPayload,
    ProgressUpdatePayload,
    RatingAddedPayload,
    ReadingState,
    StateChangePayload,
)
from ..db.sqlite import Database, get_db

logger = logging.getLogger(__name__)


class EventLedger:
    """Writes and reads a user's reading events."""

    def __init__(self, db: Optional[Database] = None, user_id: Optional[str] = None):
        """Initialize the ledger.

        Args:
            db: Database instance
            user_id: Owner of the events (default: configured user)
        """
        self.db = db or get_db()
        self.user_id = user_id or get_config().user_id

    # -------------------------------------------------------------------------
    # Event construction
    # -------------------------------------------------------------------------

    def _event(self, book_id: str, payload, timestamp: Optional[datetime]) -> BookEvent:
        return BookEvent(
            book_id=book_id,
            user_id=self.user_id,
            timestamp=timestamp or datetime.now(timezone.utc),
            payload=payload,
        )

    def state_change_event(
        self,
        book_id: str,
        previous_state: ReadingState,
        new_state: ReadingState,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Build (but do not write) a state_change event."""
        payload = StateChangePayload(previous_state=previous_state, new_state=new_state)
        return self._event(book_id, payload, timestamp)

    def progress_update_event(
        self,
        book_id: str,
        previous_page: int,
        new_page: int,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Build (but do not write) a progress_update event."""
        payload = ProgressUpdatePayload(previous_page=previous_page, new_page=new_page)
        return self._event(book_id, payload, timestamp)

    # -------------------------------------------------------------------------
    # Appends
    # -------------------------------------------------------------------------

    def commit(
        self,
        book_id: str,
        book_patch: Optional[dict[str, Any]],
        events: Sequence[BookEvent],
    ) -> list[BookEvent]:
        """Write a book patch and its events as one atomic unit.

        Raises:
            LedgerWriteFailure: If the batch fails; nothing is applied
        """
        self.db.atomic_write(self.user_id, book_id, book_patch, events)
        return list(events)

    def append_state_change(
        self,
        book_id: str,
        previous_state: ReadingState,
        new_state: ReadingState,
        book_patch: Optional[dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Append a state_change event together with its book update."""
        event = self.state_change_event(book_id, previous_state, new_state, timestamp)
        self.commit(book_id, book_patch, [event])
        return event

    def append_progress_update(
        self,
        book_id: str,
        previous_page: int,
        new_page: int,
        book_patch: Optional[dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Append a progress_update event together with its book update."""
        event = self.progress_update_event(book_id, previous_page, new_page, timestamp)
        self.commit(book_id, book_patch, [event])
        return event

    def append_rating(
        self,
        book_id: str,
        rating: int,
        book_patch: Optional[dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Append a rating_added event together with its book update."""
        event = self._event(book_id, RatingAddedPayload(rating=rating), timestamp)
        self.commit(book_id, book_patch, [event])
        return event

    def append_note(
        self,
        book_id: str,
        text: str,
        timestamp: Optional[datetime] = None,
    ) -> BookEvent:
        """Append a note_added event. Notes do not change the book."""
        event = self._event(book_id, NoteAddedPayload(text=text.strip()), timestamp)
        self.commit(book_id, None, [event])
        return event

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def events_for_book(self, book_id: str) -> list[BookEvent]:
        """All events for one book, newest first."""
        return self.db.get_events(self.user_id, book_id=book_id)

    def all_events_for_user(self, limit: Optional[int] = None) -> list[BookEvent]:
        """All of the user's events, newest first, truncated to ``limit``."""
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        return self.db.get_events(self.user_id, limit=limit)

    def events_of_type(self, event_type: EventType) -> list[BookEvent]:
        """All events of one type, newest first."""
        return [e for e in self.db.read_all_events(self.user_id) if e.type == event_type]
