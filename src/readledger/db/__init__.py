"""Database module for local SQLite storage."""

from .models import Book, LedgerEvent
from .schemas import (
    UNKNOWN_GENRE,
    BookCreate,
    BookEvent,
    BookPatch,
    BookRecord,
    EventType,
    NoteAddedPayload,
    ProgressUpdatePayload,
    RatingAddedPayload,
    ReadingState,
    StateChangePayload,
)
from .sqlite import Database, get_db

__all__ = [
    "Book",
    "LedgerEvent",
    "UNKNOWN_GENRE",
    "BookCreate",
    "BookEvent",
    "BookPatch",
    "BookRecord",
    "EventType",
    "NoteAddedPayload",
    "ProgressUpdatePayload",
    "RatingAddedPayload",
    "ReadingState",
    "StateChangePayload",
    "Database",
    "get_db",
]
