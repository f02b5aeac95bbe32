"""Monthly reading activity by genre.

Turns the ledger plus the current book set into a dense month x genre
matrix covering the trailing twelve calendar months:

1. Only progress_update events count.
2. Each event's genre is looked up on the *current* book; a missing book
   or genre becomes "Unknown". Re-genring a book therefore re-categorizes
   its whole history.
3. The genre universe is every genre resolved across all progress events,
   inside the window or not, and every row carries every universe genre.
4. Events fall into the calendar month containing their timestamp.
5. Each event contributes ``max(0, new_page - previous_page)``; page
   regressions add nothing.

Everything is recomputed from scratch on each call.
"""

import calendar
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Optional

from ..db.schemas import UNKNOWN_GENRE, BookEvent, BookRecord, EventType
from .colors import assign_colors

logger = logging.getLogger(__name__)

# Number of trailing calendar months in the activity window
WINDOW_MONTHS = 12


@dataclass
class MonthBucket:
    """Pages read per genre in one calendar month."""

    year: int
    month: int
    pages_by_genre: dict[str, int] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Short label, e.g. 'Oct 2026'."""
        return f"{calendar.month_abbr[self.month]} {self.year}"

    @property
    def total(self) -> int:
        """Pages read across all genres."""
        return sum(self.pages_by_genre.values())

    def to_row(self) -> dict:
        """Flatten to a chart row: month label, total, then one key per genre."""
        row: dict = {"month": self.label, "total": self.total}
        row.update(self.pages_by_genre)
        return row


def resolve_genre(book_id: str, books_by_id: Mapping[str, BookRecord]) -> str:
    """Genre of the book an event points at, or "Unknown"."""
    book = books_by_id.get(book_id)
    if book is None:
        return UNKNOWN_GENRE
    return book.resolved_genre


def trailing_months(today: date, count: int = WINDOW_MONTHS) -> list[tuple[int, int]]:
    """(year, month) pairs for the ``count`` months ending with ``today``'s month.

    Oldest first.
    """
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(months))


def _event_month(timestamp: datetime) -> tuple[int, int]:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.year, timestamp.month


def progress_events(events: Iterable[BookEvent]) -> list[BookEvent]:
    """Only the progress_update events."""
    return [e for e in events if e.type == EventType.PROGRESS_UPDATE]


def bucket_progress_by_month(
    books: Iterable[BookRecord],
    events: Iterable[BookEvent],
    today: Optional[date] = None,
) -> list[MonthBucket]:
    """Group clamped page deltas into trailing calendar-month buckets.

    Args:
        books: Current book set
        events: Ledger events in any order
        today: Anchor date for the window (default: today, UTC)

    Returns:
        WINDOW_MONTHS buckets oldest first, or [] when there are no books
        or no events
    """
    books = list(books)
    events = list(events)
    if not books or not events:
        logger.debug("No books or events, skipping activity aggregation")
        return []

    if today is None:
        today = datetime.now(timezone.utc).date()

    books_by_id = {book.id: book for book in books}
    progress = [(e, resolve_genre(e.book_id, books_by_id)) for e in progress_events(events)]
    universe = sorted({genre for _, genre in progress})

    buckets = {
        key: MonthBucket(year=key[0], month=key[1], pages_by_genre=dict.fromkeys(universe, 0))
        for key in trailing_months(today)
    }

    for event, genre in progress:
        bucket = buckets.get(_event_month(event.timestamp))
        if bucket is None:
            continue
        bucket.pages_by_genre[genre] += event.payload.pages_read

    logger.debug(
        "Aggregated %d progress events into %d buckets over %d genres",
        len(progress),
        len(buckets),
        len(universe),
    )
    return list(buckets.values())


def monthly_genre_activity(
    books: Iterable[BookRecord],
    events: Iterable[BookEvent],
    today: Optional[date] = None,
) -> list[dict]:
    """Dense chart rows of pages read per genre per month.

    Each row is ``{"month": "Oct 2026", "total": n, "<genre>": n, ...}``.
    An empty list means there was no data at all, which is different from
    twelve rows of zeros.
    """
    return [bucket.to_row() for bucket in bucket_progress_by_month(books, events, today)]


def activity_genres(rows: list[dict]) -> list[str]:
    """Genre columns present in activity rows."""
    if not rows:
        return []
    return [key for key in rows[0] if key not in ("month", "total")]


def genre_distribution(books: Iterable[BookRecord], limit: Optional[int] = 8) -> list[dict]:
    """Share of the library per genre, largest first.

    Colors are assigned over all genres before truncating, so they match
    the activity chart.

    Returns:
        Rows of ``{"name", "value", "percentage", "fill"}``
    """
    books = list(books)
    if not books:
        return []

    counts = Counter(book.resolved_genre for book in books)
    colors = assign_colors(counts)

    rows = [
        {
            "name": genre,
            "value": count,
            "percentage": round(count / len(books) * 100),
            "fill": colors[genre],
        }
        for genre, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]
    return rows[:limit] if limit is not None else rows
