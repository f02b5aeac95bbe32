"""Tests for headline reading metrics."""

from datetime import date, datetime, timedelta

from conftest import NOW, make_book, progress
from readledger.db.schemas import ReadingState
from readledger.stats.metrics import (
    library_summary,
    lifetime_totals,
    reading_streak,
    reading_velocity,
)

TODAY = NOW.date()


def days_ago(n: int):
    return NOW - timedelta(days=n)


class TestReadingVelocity:
    """Tests for reading_velocity()."""

    def test_no_events(self):
        """Test an empty ledger has no velocity."""
        assert reading_velocity([]) == 0

    def test_single_event(self):
        """Test one event cannot define a rate."""
        assert reading_velocity([progress("b1", 0, 100)]) == 0

    def test_two_events_ten_days_apart(self):
        """Test 100 pages over 10 days is 10 pages/day."""
        events = [
            progress("b1", 0, 40, days_ago(10)),
            progress("b1", 40, 100, NOW),
        ]
        assert reading_velocity(events) == 10

    def test_same_day_uses_one_day(self):
        """Test events on the same instant divide by one day."""
        events = [progress("b1", 0, 20, NOW), progress("b1", 20, 50, NOW)]
        assert reading_velocity(events) == 50

    def test_naive_and_aware_timestamps_mixed(self):
        """Test naive timestamps are read as UTC alongside aware ones."""
        events = [
            progress("b1", 0, 50, NOW),
            progress("b1", 50, 100, datetime(2026, 10, 8, 12, 0)),
        ]
        assert reading_velocity(events) == 10

    def test_regressions_clamped(self):
        """Test backward moves add no pages."""
        events = [
            progress("b1", 0, 100, days_ago(10)),
            progress("b1", 100, 20, NOW),
        ]
        assert reading_velocity(events) == 10


class TestLifetimeTotals:
    """Tests for lifetime_totals()."""

    def test_finished_books_only(self):
        """Test only finished books are counted."""
        books = [
            make_book("b1", state=ReadingState.FINISHED, total_pages=200, rating=4),
            make_book("b2", state=ReadingState.FINISHED, total_pages=100, rating=5),
            make_book("b3", state=ReadingState.IN_PROGRESS, total_pages=999, rating=1),
        ]

        totals = lifetime_totals(books)

        assert totals.books_finished == 2
        assert totals.pages_read == 300
        assert totals.average_rating == 4.5
        assert totals.rated_books == 2

    def test_unrated_books_excluded_from_average(self):
        """Test unrated books do not drag the average down."""
        books = [
            make_book("b1", state=ReadingState.FINISHED, rating=3),
            make_book("b2", state=ReadingState.FINISHED, rating=None),
        ]
        assert lifetime_totals(books).average_rating == 3.0

    def test_empty(self):
        """Test an empty library."""
        totals = lifetime_totals([])
        assert totals.books_finished == 0
        assert totals.average_rating == 0.0


class TestReadingStreak:
    """Tests for reading_streak()."""

    def test_no_reading(self):
        """Test no progress means no streak."""
        streak = reading_streak([], today=TODAY)
        assert streak.current_days == 0
        assert streak.longest_days == 0
        assert streak.last_read is None

    def test_consecutive_days_ending_today(self):
        """Test three days in a row."""
        events = [progress("b1", i, i + 1, days_ago(i)) for i in range(3)]

        streak = reading_streak(events, today=TODAY)
        assert streak.current_days == 3
        assert streak.longest_days == 3
        assert streak.last_read == TODAY

    def test_streak_survives_until_tomorrow(self):
        """Test a streak ending yesterday is still current."""
        events = [progress("b1", 0, 5, days_ago(1)), progress("b1", 5, 9, days_ago(2))]

        assert reading_streak(events, today=TODAY).current_days == 2

    def test_broken_streak(self):
        """Test a gap of two days ends the current streak."""
        events = [progress("b1", 0, 5, days_ago(3)), progress("b1", 5, 9, days_ago(4))]

        streak = reading_streak(events, today=TODAY)
        assert streak.current_days == 0
        assert streak.longest_days == 2

    def test_longest_streak_in_the_past(self):
        """Test the longest run is found even when it is not current."""
        events = [progress("b1", 0, 1, NOW)] + [
            progress("b1", i, i + 1, days_ago(10 + i)) for i in range(4)
        ]

        streak = reading_streak(events, today=TODAY)
        assert streak.current_days == 1
        assert streak.longest_days == 4

    def test_multiple_events_same_day(self):
        """Test several updates on one day count once."""
        events = [progress("b1", 0, 5, NOW), progress("b1", 5, 10, NOW)]
        assert reading_streak(events, today=TODAY).current_days == 1


class TestLibrarySummary:
    """Tests for library_summary()."""

    def test_counts(self):
        """Test the library breakdown."""
        books = [
            make_book("b1", genre="Fiction", state=ReadingState.FINISHED,
                      is_owned=True, finished_at=NOW),
            make_book("b2", genre="Fiction", state=ReadingState.FINISHED,
                      finished_at=NOW - timedelta(days=60)),
            make_book("b3", genre="History", state=ReadingState.IN_PROGRESS, is_owned=True),
            make_book("b4", genre=None, state=ReadingState.NOT_STARTED),
        ]

        summary = library_summary(books, today=TODAY)

        assert summary.books_in_library == 4
        assert summary.currently_reading == 1
        assert summary.not_started == 1
        assert summary.owned == 2
        assert summary.wishlist == 2
        assert summary.books_finished_this_month == 1
        assert summary.books_finished_this_year == 2
        assert summary.favorite_genres == ["Fiction", "History"]

    def test_previous_year_not_counted(self):
        """Test books finished last year are not this year's."""
        books = [
            make_book("b1", state=ReadingState.FINISHED, finished_at=NOW.replace(year=2025)),
        ]
        summary = library_summary(books, today=date(2026, 10, 18))
        assert summary.books_finished_this_year == 0
