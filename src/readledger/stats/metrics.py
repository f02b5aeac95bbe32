"""Headline reading metrics.

Velocity and streaks come from the ledger's progress events; lifetime
totals and the library summary come from the current book set only.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from ..db.schemas import BookEvent, BookRecord, ReadingState
from .activity import progress_events

SECONDS_PER_DAY = 24 * 60 * 60


def utc_datetime(value: datetime) -> datetime:
    """Timestamp as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_date(value: datetime) -> date:
    """Calendar date of a timestamp in UTC."""
    return utc_datetime(value).date()


@dataclass
class LifetimeTotals:
    """Totals over all finished books."""

    books_finished: int = 0
    pages_read: int = 0
    average_rating: float = 0.0
    rated_books: int = 0


@dataclass
class StreakInfo:
    """Consecutive days with reading progress."""

    current_days: int = 0
    longest_days: int = 0
    last_read: Optional[date] = None


@dataclass
class LibrarySummary:
    """Counts describing the library right now."""

    books_in_library: int = 0
    currently_reading: int = 0
    not_started: int = 0
    owned: int = 0
    wishlist: int = 0
    books_finished_this_month: int = 0
    books_finished_this_year: int = 0
    favorite_genres: list[str] = field(default_factory=list)


def reading_velocity(events: Iterable[BookEvent]) -> int:
    """Pages read per day across the span of progress events.

    Total clamped pages divided by the days between the oldest and newest
    progress event (at least one day), rounded. A single event cannot define
    a rate, so fewer than two events gives 0.
    """
    progress = progress_events(events)
    if len(progress) < 2:
        return 0

    total_pages = sum(e.payload.pages_read for e in progress)
    timestamps = [utc_datetime(e.timestamp) for e in progress]
    span_days = (max(timestamps) - min(timestamps)).total_seconds() / SECONDS_PER_DAY

    return round(total_pages / max(1, span_days))


def lifetime_totals(books: Iterable[BookRecord]) -> LifetimeTotals:
    """Totals over the current set of finished books.

    Pages read is the sum of finished books' page counts. Unrated books are
    left out of the average rating entirely.
    """
    finished = [b for b in books if b.state == ReadingState.FINISHED]
    ratings = [b.rating for b in finished if b.rating is not None]

    return LifetimeTotals(
        books_finished=len(finished),
        pages_read=sum(b.total_pages for b in finished),
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
        rated_books=len(ratings),
    )


def reading_streak(events: Iterable[BookEvent], today: Optional[date] = None) -> StreakInfo:
    """Current and longest runs of consecutive days with progress.

    The current streak may end yesterday, so a reader who has not read yet
    today keeps their streak.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    reading_dates = sorted(
        {utc_date(e.timestamp) for e in progress_events(events)},
        reverse=True,
    )
    if not reading_dates:
        return StreakInfo()

    # Current streak (consecutive days ending today or yesterday)
    current_streak = 0
    check_date = today
    if reading_dates[0] == check_date - timedelta(days=1):
        check_date = check_date - timedelta(days=1)

    for reading_date in reading_dates:
        if reading_date == check_date:
            current_streak += 1
            check_date -= timedelta(days=1)
        elif reading_date < check_date:
            break

    # Longest streak
    longest_streak = 1
    current_run = 1
    ascending = list(reversed(reading_dates))
    for previous, current in zip(ascending, ascending[1:]):
        if current - previous == timedelta(days=1):
            current_run += 1
            longest_streak = max(longest_streak, current_run)
        else:
            current_run = 1

    return StreakInfo(
        current_days=current_streak,
        longest_days=longest_streak,
        last_read=reading_dates[0],
    )


def library_summary(
    books: Iterable[BookRecord],
    today: Optional[date] = None,
    favorite_count: int = 3,
) -> LibrarySummary:
    """Summarize the library as it is now."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    books = list(books)

    finished_dates = [
        utc_date(b.finished_at)
        for b in books
        if b.state == ReadingState.FINISHED and b.finished_at is not None
    ]
    genre_counts = Counter(b.genre for b in books if b.genre)

    return LibrarySummary(
        books_in_library=len(books),
        currently_reading=sum(1 for b in books if b.state == ReadingState.IN_PROGRESS),
        not_started=sum(1 for b in books if b.state == ReadingState.NOT_STARTED),
        owned=sum(1 for b in books if b.is_owned),
        wishlist=sum(1 for b in books if not b.is_owned),
        books_finished_this_month=sum(
            1 for d in finished_dates if (d.year, d.month) == (today.year, today.month)
        ),
        books_finished_this_year=sum(1 for d in finished_dates if d.year == today.year),
        favorite_genres=[genre for genre, _ in genre_counts.most_common(favorite_count)],
    )
