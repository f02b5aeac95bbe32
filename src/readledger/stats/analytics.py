"""Reading analytics over the stored library and ledger.

Every method re-reads the full book set and event set and recomputes from
scratch. Nothing is cached between calls.
"""

from datetime import date
from typing import Optional

from ..config import get_config
from ..db.sqlite import Database, get_db
from .activity import activity_genres, genre_distribution, monthly_genre_activity
from .colors import assign_colors
from .metrics import (
    LibrarySummary,
    LifetimeTotals,
    StreakInfo,
    library_summary,
    lifetime_totals,
    reading_streak,
    reading_velocity,
)


class ReadingAnalytics:
    """Calculates reading analytics for one user."""

    def __init__(self, db: Optional[Database] = None, user_id: Optional[str] = None):
        """Initialize analytics.

        Args:
            db: Database instance
            user_id: Library owner (default: configured user)
        """
        self.db = db or get_db()
        self.user_id = user_id or get_config().user_id

    def monthly_activity(self, today: Optional[date] = None) -> list[dict]:
        """Pages read per genre for each of the last twelve months."""
        books = self.db.read_all_books(self.user_id)
        events = self.db.read_all_events(self.user_id)
        return monthly_genre_activity(books, events, today=today)

    def activity_colors(self, rows: list[dict]) -> dict[str, str]:
        """Colors for the genre columns of activity rows."""
        return assign_colors(activity_genres(rows))

    def genre_distribution(self, limit: Optional[int] = 8) -> list[dict]:
        """Books per genre with chart colors, largest first."""
        return genre_distribution(self.db.read_all_books(self.user_id), limit=limit)

    def velocity(self) -> int:
        """Pages read per day across the ledger."""
        return reading_velocity(self.db.read_all_events(self.user_id))

    def streak(self, today: Optional[date] = None) -> StreakInfo:
        """Current and longest reading streaks."""
        return reading_streak(self.db.read_all_events(self.user_id), today=today)

    def totals(self) -> LifetimeTotals:
        """Lifetime totals over finished books."""
        return lifetime_totals(self.db.read_all_books(self.user_id))

    def summary(self, today: Optional[date] = None) -> LibrarySummary:
        """Library counts as of ``today``."""
        return library_summary(self.db.read_all_books(self.user_id), today=today)
