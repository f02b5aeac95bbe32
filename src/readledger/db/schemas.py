"""Pydantic schemas for data validation.

Books are exchanged as ``BookRecord`` values and ledger entries as
``BookEvent`` values whose payload is a tagged union keyed by event type.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

# Sentinel genre for books with no genre and events whose book is gone
UNKNOWN_GENRE = "Unknown"


class ReadingState(str, Enum):
    """Reading state of a book."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class EventType(str, Enum):
    """Type of ledger event."""

    STATE_CHANGE = "state_change"
    PROGRESS_UPDATE = "progress_update"
    RATING_ADDED = "rating_added"
    NOTE_ADDED = "note_added"


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


# ============================================================================
# Book Schemas
# ============================================================================


class BookBase(BaseModel):
    """Base book fields common to create/record schemas."""

    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Primary author")
    state: ReadingState = Field(default=ReadingState.NOT_STARTED)

    # Progress; total_pages == 0 means the page count is unknown
    current_page: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)

    genre: Optional[str] = Field(None, description="Genre, 'Unknown' when absent")
    is_owned: bool = Field(default=False, description="Owned, otherwise wishlist")
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating 1-5")

    # Metadata
    isbn: Optional[str] = Field(None, max_length=13)
    description: Optional[str] = None
    published_date: Optional[str] = None

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Strip surrounding whitespace from required text fields."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("genre", mode="before")
    @classmethod
    def clean_genre(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank genres as missing."""
        return _blank_to_none(v)


class BookCreate(BookBase):
    """Schema for adding a book to the library."""

    pass


class BookRecord(BookBase):
    """A stored book, as read from the database."""

    id: str
    user_id: str
    added_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def resolved_genre(self) -> str:
        """Genre label used for grouping."""
        return self.genre or UNKNOWN_GENRE

    @property
    def has_page_count(self) -> bool:
        """Whether the total page count is known."""
        return self.total_pages > 0


class BookPatch(BaseModel):
    """Partial book update for manual corrections. All fields optional.

    Applying a patch bypasses the reading-state transition table.
    """

    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    state: Optional[ReadingState] = None
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
    genre: Optional[str] = None
    is_owned: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    isbn: Optional[str] = Field(None, max_length=13)
    description: Optional[str] = None
    published_date: Optional[str] = None

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Strip surrounding whitespace from text fields."""
        return v.strip() if isinstance(v, str) else v


# ============================================================================
# Event Payload Schemas
# ============================================================================


class StateChangePayload(BaseModel):
    """Payload for a reading-state change."""

    type: Literal["state_change"] = "state_change"
    previous_state: ReadingState
    new_state: ReadingState


class ProgressUpdatePayload(BaseModel):
    """Payload for a page progress change."""

    type: Literal["progress_update"] = "progress_update"
    previous_page: int = Field(..., ge=0)
    new_page: int = Field(..., ge=0)

    @property
    def pages_read(self) -> int:
        """Forward page delta; regressions count as zero."""
        return max(0, self.new_page - self.previous_page)


class RatingAddedPayload(BaseModel):
    """Payload for a rating."""

    type: Literal["rating_added"] = "rating_added"
    rating: int = Field(..., ge=1, le=5)


class NoteAddedPayload(BaseModel):
    """Payload for a free-text note."""

    type: Literal["note_added"] = "note_added"
    text: str = Field(..., min_length=1)


EventPayload = Annotated[
    Union[StateChangePayload, ProgressUpdatePayload, RatingAddedPayload, NoteAddedPayload],
    Field(discriminator="type"),
]


# ============================================================================
# Event Schemas
# ============================================================================


class BookEvent(BaseModel):
    """An immutable ledger entry."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    book_id: str
    user_id: str
    timestamp: datetime
    payload: EventPayload

    model_config = {"frozen": True}

    @property
    def type(self) -> EventType:
        """Event type, taken from the payload tag."""
        return EventType(self.payload.type)
