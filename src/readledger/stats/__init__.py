"""Reading statistics and analytics."""

from .activity import (
    WINDOW_MONTHS,
    MonthBucket,
    bucket_progress_by_month,
    genre_distribution,
    monthly_genre_activity,
)
from .analytics import ReadingAnalytics
from .colors import GENRE_COLOR_PALETTE, UNKNOWN_GENRE_COLOR, assign_colors, genre_color
from .goals import GoalTracker, GoalType, ReadingGoal
from .metrics import (
    LibrarySummary,
    LifetimeTotals,
    StreakInfo,
    library_summary,
    lifetime_totals,
    reading_streak,
    reading_velocity,
)

__all__ = [
    "WINDOW_MONTHS",
    "MonthBucket",
    "bucket_progress_by_month",
    "genre_distribution",
    "monthly_genre_activity",
    "ReadingAnalytics",
    "GENRE_COLOR_PALETTE",
    "UNKNOWN_GENRE_COLOR",
    "assign_colors",
    "genre_color",
    "GoalTracker",
    "GoalType",
    "ReadingGoal",
    "LibrarySummary",
    "LifetimeTotals",
    "StreakInfo",
    "library_summary",
    "lifetime_totals",
    "reading_streak",
    "reading_velocity",
]
