"""Reading goals tracking.

Supports yearly and monthly goals for books finished or pages read. Goal
targets are kept in a small JSON file; progress is always recomputed from
the current book set and the ledger.
"""

import calendar
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config import get_config
from ..db.schemas import ReadingState
from ..db.sqlite import Database, get_db
from .activity import progress_events
from .metrics import utc_date

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class GoalType(str, Enum):
    """Type of reading goal."""

    BOOKS = "books"  # Number of books to finish
    PAGES = "pages"  # Number of pages to read


@dataclass
class ReadingGoal:
    """A reading goal."""

    goal_type: GoalType
    target: int
    year: int
    month: Optional[int] = None  # None = yearly goal
    current: int = 0
    created_at: Optional[str] = None

    @property
    def progress_percent(self) -> float:
        """Calculate progress percentage."""
        if self.target <= 0:
            return 0.0
        return min(100.0, round((self.current / self.target) * 100, 1))

    @property
    def remaining(self) -> int:
        """Calculate remaining to reach goal."""
        return max(0, self.target - self.current)

    @property
    def is_complete(self) -> bool:
        """Check if goal is complete."""
        return self.current >= self.target

    @property
    def period_label(self) -> str:
        """Get human-readable period label."""
        if self.month:
            return f"{calendar.month_name[self.month]} {self.year}"
        return str(self.year)

    def covers(self, day: date) -> bool:
        """Whether ``day`` falls inside the goal's period."""
        if day.year != self.year:
            return False
        return self.month is None or day.month == self.month

    def to_dict(self) -> dict:
        """Convert to dictionary for persistence."""
        return {
            "goal_type": self.goal_type.value,
            "target": self.target,
            "year": self.year,
            "month": self.month,
            "created_at": self.created_at or datetime.now(timezone.utc).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReadingGoal":
        """Create from dictionary."""
        return cls(
            goal_type=GoalType(data["goal_type"]),
            target=data["target"],
            year=data["year"],
            month=data.get("month"),
            created_at=data.get("created_at"),
        )


class GoalTracker:
    """Tracks and manages reading goals."""

    def __init__(
        self,
        db: Optional[Database] = None,
        goals_file: Optional[Path] = None,
        user_id: Optional[str] = None,
    ):
        """Initialize goal tracker.

        Args:
            db: Database instance
            goals_file: Path to persist goals (default: READLEDGER_GOALS_FILE)
            user_id: Library owner (default: configured user)
        """
        config = get_config()
        self.db = db or get_db()
        self.goals_file = Path(goals_file or config.goals_file)
        self.user_id = user_id or config.user_id
        self._goals: list[ReadingGoal] = []
        self._load_goals()

    def _load_goals(self) -> None:
        """Load goals from file."""
        if self.goals_file.exists():
            try:
                with open(self.goals_file, "r") as f:
                    data = json.load(f)
                    self._goals = [ReadingGoal.from_dict(g) for g in data]
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning("Ignoring unreadable goals file %s: %s", self.goals_file, e)
                self._goals = []

    def _save_goals(self) -> None:
        """Save goals to file."""
        self.goals_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.goals_file, "w") as f:
            json.dump([g.to_dict() for g in self._goals], f, indent=2)

    def set_goal(
        self,
        goal_type: GoalType,
        target: int,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> ReadingGoal:
        """Set a reading goal.

        Args:
            goal_type: Type of goal (books, pages)
            target: Target number
            year: Year for goal (default: current year)
            month: Month for goal (None = yearly goal)

        Returns:
            The created/updated goal
        """
        if target <= 0:
            raise ValueError("Goal target must be positive")
        if month is not None and not 1 <= month <= 12:
            raise ValueError("Month must be between 1 and 12")
        if year is None:
            year = _utc_today().year

        # Remove existing goal for same period/type
        self._goals = [
            g for g in self._goals
            if not (g.year == year and g.month == month and g.goal_type == goal_type)
        ]

        goal = ReadingGoal(
            goal_type=goal_type,
            target=target,
            year=year,
            month=month,
        )

        self._goals.append(goal)
        self._save_goals()

        self._update_goal_progress(goal)
        return goal

    def get_goal(
        self,
        goal_type: GoalType,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Optional[ReadingGoal]:
        """Get a specific goal with current progress, or None."""
        if year is None:
            year = _utc_today().year

        for goal in self._goals:
            if goal.year == year and goal.month == month and goal.goal_type == goal_type:
                self._update_goal_progress(goal)
                return goal
        return None

    def get_current_goals(self, today: Optional[date] = None) -> list[ReadingGoal]:
        """Get all goals for the current year/month with updated progress."""
        today = today or _utc_today()
        current_goals = [
            g for g in self._goals
            if g.year == today.year and (g.month is None or g.month == today.month)
        ]

        for goal in current_goals:
            self._update_goal_progress(goal)

        return current_goals

    def get_all_goals(self) -> list[ReadingGoal]:
        """Get all goals with updated progress."""
        for goal in self._goals:
            self._update_goal_progress(goal)
        return self._goals

    def delete_goal(
        self,
        goal_type: GoalType,
        year: int,
        month: Optional[int] = None,
    ) -> bool:
        """Delete a goal. Returns True if one was removed."""
        initial_count = len(self._goals)
        self._goals = [
            g for g in self._goals
            if not (g.year == year and g.month == month and g.goal_type == goal_type)
        ]

        if len(self._goals) < initial_count:
            self._save_goals()
            return True
        return False

    def _update_goal_progress(self, goal: ReadingGoal) -> None:
        """Recompute a goal's progress from books and ledger."""
        if goal.goal_type == GoalType.BOOKS:
            books = self.db.read_all_books(self.user_id)
            goal.current = sum(
                1
                for b in books
                if b.state == ReadingState.FINISHED
                and b.finished_at is not None
                and goal.covers(utc_date(b.finished_at))
            )

        elif goal.goal_type == GoalType.PAGES:
            events = progress_events(self.db.read_all_events(self.user_id))
            goal.current = sum(
                e.payload.pages_read
                for e in events
                if goal.covers(utc_date(e.timestamp))
            )

    def get_progress_summary(self, today: Optional[date] = None) -> dict:
        """Summary of current goals, comparing actual to expected progress.

        A goal is on track when it is within 10% of where it should be for
        the elapsed part of its period.
        """
        today = today or _utc_today()
        goals = self.get_current_goals(today)

        summary = {
            "goals": [],
            "on_track_count": 0,
            "behind_count": 0,
            "complete_count": 0,
        }

        day_of_year = today.timetuple().tm_yday
        days_in_year = 366 if calendar.isleap(today.year) else 365

        for goal in goals:
            if goal.month:
                days_in_month = calendar.monthrange(goal.year, goal.month)[1]
                expected_pct = (today.day / days_in_month) * 100
            else:
                expected_pct = (day_of_year / days_in_year) * 100

            actual_pct = goal.progress_percent
            is_on_track = actual_pct >= expected_pct * 0.9

            status = "complete" if goal.is_complete else ("on_track" if is_on_track else "behind")

            if goal.is_complete:
                summary["complete_count"] += 1
            elif is_on_track:
                summary["on_track_count"] += 1
            else:
                summary["behind_count"] += 1

            summary["goals"].append({
                "goal": goal,
                "expected_percent": round(expected_pct, 1),
                "actual_percent": actual_pct,
                "status": status,
            })

        return summary
