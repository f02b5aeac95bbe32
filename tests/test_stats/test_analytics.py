"""Tests for reading analytics over the stored ledger."""

from datetime import timedelta

import pytest

from conftest import NOW, TEST_USER
from readledger.db.schemas import BookCreate, BookPatch
from readledger.db.sqlite import Database
from readledger.reading import ReadingService
from readledger.stats.analytics import ReadingAnalytics
from readledger.stats.colors import GENRE_COLOR_PALETTE, UNKNOWN_GENRE_COLOR

TODAY = NOW.date()


@pytest.fixture
def analytics(db: Database) -> ReadingAnalytics:
    """Analytics bound to the test database."""
    return ReadingAnalytics(db=db, user_id=TEST_USER)


@pytest.fixture
def reading_history(service: ReadingService):
    """Two books with a few weeks of progress."""
    novel = service.add_book(
        BookCreate(title="Novel", author="A", genre="Fiction", total_pages=300), now=NOW
    )
    history = service.add_book(
        BookCreate(title="Empire", author="B", genre="History", total_pages=500), now=NOW
    )
    service.update_progress(novel.id, 50, now=NOW - timedelta(days=35))
    service.update_progress(novel.id, 120, now=NOW - timedelta(days=2))
    service.update_progress(history.id, 80, now=NOW - timedelta(days=1))
    return novel, history


class TestReadingAnalytics:
    """Tests for ReadingAnalytics."""

    def test_empty_database(self, analytics: ReadingAnalytics):
        """Test no data means no activity rows."""
        assert analytics.monthly_activity(today=TODAY) == []
        assert analytics.genre_distribution() == []
        assert analytics.velocity() == 0

    def test_monthly_activity(self, analytics: ReadingAnalytics, reading_history):
        """Test activity rows come from the stored ledger."""
        rows = analytics.monthly_activity(today=TODAY)

        assert len(rows) == 12
        assert rows[-1] == {"month": "Oct 2026", "total": 150, "Fiction": 70, "History": 80}
        assert rows[-2] == {"month": "Sep 2026", "total": 50, "Fiction": 50, "History": 0}

    def test_recomputed_after_regenre(
        self, analytics: ReadingAnalytics, service: ReadingService, reading_history
    ):
        """Test changing a genre re-categorizes past activity."""
        novel, _ = reading_history
        service.manual_update(novel.id, BookPatch(genre="Mystery"), now=NOW)

        rows = analytics.monthly_activity(today=TODAY)
        assert "Fiction" not in rows[-1]
        assert rows[-1]["Mystery"] == 70

    def test_deleted_book_becomes_unknown(
        self, analytics: ReadingAnalytics, service: ReadingService, reading_history
    ):
        """Test history of deleted books is kept under Unknown."""
        _, history = reading_history
        service.delete_book(history.id)

        rows = analytics.monthly_activity(today=TODAY)
        assert rows[-1]["Unknown"] == 80
        assert analytics.activity_colors(rows)["Unknown"] == UNKNOWN_GENRE_COLOR

    def test_activity_colors(self, analytics: ReadingAnalytics, reading_history):
        """Test activity colors follow sorted genres."""
        rows = analytics.monthly_activity(today=TODAY)
        assert analytics.activity_colors(rows) == {
            "Fiction": GENRE_COLOR_PALETTE[0],
            "History": GENRE_COLOR_PALETTE[1],
        }

    def test_velocity_and_streak(self, analytics: ReadingAnalytics, reading_history):
        """Test ledger metrics."""
        # 200 pages over 34 days
        assert analytics.velocity() == 6

        streak = analytics.streak(today=TODAY)
        assert streak.current_days == 2

    def test_other_users_excluded(self, db: Database, reading_history):
        """Test analytics only see their own user's data."""
        other = ReadingAnalytics(db=db, user_id="someone-else")
        assert other.monthly_activity(today=TODAY) == []

    def test_totals_and_summary(
        self, analytics: ReadingAnalytics, service: ReadingService, reading_history
    ):
        """Test totals over finished books."""
        novel, _ = reading_history
        service.update_progress(novel.id, 300, now=NOW)
        service.rate_book(novel.id, 4, now=NOW)

        totals = analytics.totals()
        assert totals.books_finished == 1
        assert totals.pages_read == 300
        assert totals.average_rating == 4.0

        summary = analytics.summary(today=TODAY)
        assert summary.books_finished_this_month == 1
        assert summary.currently_reading == 1
