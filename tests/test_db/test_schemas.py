"""Tests for Pydantic schemas."""

import pytest
from pydantic import TypeAdapter, ValidationError

from conftest import NOW, make_book
from readledger.db.schemas import (
    BookCreate,
    BookEvent,
    BookPatch,
    EventPayload,
    EventType,
    NoteAddedPayload,
    ProgressUpdatePayload,
    ReadingState,
)


class TestBookCreate:
    """Tests for BookCreate schema."""

    def test_minimal_book(self):
        """Test creating book with minimal fields."""
        book = BookCreate(title="Test", author="Author")

        assert book.state == ReadingState.NOT_STARTED
        assert book.current_page == 0
        assert book.total_pages == 0
        assert book.genre is None
        assert book.is_owned is False

    def test_strips_title_and_author(self):
        """Test surrounding whitespace is removed."""
        book = BookCreate(title="  Dune ", author=" Frank Herbert")

        assert book.title == "Dune"
        assert book.author == "Frank Herbert"

    def test_blank_title_rejected(self):
        """Test whitespace-only titles are rejected."""
        with pytest.raises(ValidationError):
            BookCreate(title="   ", author="Author")

    def test_blank_genre_becomes_none(self):
        """Test blank genres count as missing."""
        assert BookCreate(title="T", author="A", genre="  ").genre is None

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, rating):
        """Test rating must be 1-5."""
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", rating=rating)

    def test_negative_pages_rejected(self):
        """Test page counts cannot be negative."""
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", total_pages=-1)


class TestBookRecord:
    """Tests for BookRecord helpers."""

    def test_resolved_genre(self):
        """Test missing genres resolve to Unknown."""
        assert make_book(genre=None).resolved_genre == "Unknown"
        assert make_book(genre="Poetry").resolved_genre == "Poetry"

    def test_has_page_count(self):
        """Test 0 total pages means unknown."""
        assert make_book(total_pages=0).has_page_count is False
        assert make_book(total_pages=10).has_page_count is True


class TestBookPatch:
    """Tests for BookPatch schema."""

    def test_only_set_fields_dumped(self):
        """Test unset fields are not part of the patch."""
        patch = BookPatch(genre="Fantasy")
        assert patch.model_dump(exclude_unset=True) == {"genre": "Fantasy"}

    def test_empty_title_rejected(self):
        """Test a patch cannot blank the title."""
        with pytest.raises(ValidationError):
            BookPatch(title="")


class TestEvents:
    """Tests for event payloads and BookEvent."""

    def test_payload_discriminated_by_type(self):
        """Test payload dicts parse into the right model."""
        payload = TypeAdapter(EventPayload).validate_python(
            {"type": "note_added", "text": "hello"}
        )
        assert isinstance(payload, NoteAddedPayload)

    def test_unknown_payload_type(self):
        """Test unknown event types are rejected."""
        with pytest.raises(ValidationError):
            TypeAdapter(EventPayload).validate_python({"type": "bogus"})

    @pytest.mark.parametrize(
        "previous,new,expected",
        [(50, 120, 70), (100, 50, 0), (10, 10, 0), (0, 304, 304)],
    )
    def test_pages_read_clamped(self, previous, new, expected):
        """Test page regressions count as zero pages read."""
        payload = ProgressUpdatePayload(previous_page=previous, new_page=new)
        assert payload.pages_read == expected

    def test_event_type_from_payload(self):
        """Test the event type follows the payload tag."""
        event = BookEvent(
            book_id="b",
            user_id="u",
            timestamp=NOW,
            payload=ProgressUpdatePayload(previous_page=0, new_page=5),
        )
        assert event.type == EventType.PROGRESS_UPDATE

    def test_event_ids_unique(self):
        """Test each event gets its own id."""
        kwargs = dict(book_id="b", user_id="u", timestamp=NOW, payload={"type": "note_added", "text": "x"})
        assert BookEvent(**kwargs).id != BookEvent(**kwargs).id
