"""Daily progress evaluation.

Per request: fetch the live feed, evaluate the last 30 days against their
distance goals, persist each day, then count consecutive misses and apply
elimination. The feed is read before anything is written, so a failed
fetch leaves stored progress as it was.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from ..analysis import (
    StreakAnalyzer,
    check_daily_goal,
    derive_day_status,
    required_distance,
    runs_for_date,
    utc_today,
)
from ..db.repositories import ActivityRepository, ProgressRepository, UserRepository
from ..models import Activity, DayStatus, StreakStatus, User
from .elimination import EliminationController
from .feed import ActivityFeed

logger = logging.getLogger(__name__)


@dataclass
class DayEvaluation:
    """One evaluated day with the runs that counted toward it."""
    date: date
    required_distance: float
    total_distance: float
    goal_met: bool
    shortfall: float
    status: DayStatus
    runs: List[Activity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "required_distance": self.required_distance,
            "total_distance": round(self.total_distance, 2),
            "goal_met": self.goal_met,
            "shortfall": round(self.shortfall, 2),
            "status": self.status.value,
            "runs": [run.to_dict() for run in self.runs],
        }


@dataclass
class ProgressReport:
    """Window of evaluated days plus the resulting standing."""
    user_id: int
    days: List[DayEvaluation]
    consecutive_misses: int
    standing: StreakStatus
    bailout_passes: int

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "days": [d.to_dict() for d in self.days],
            "consecutive_misses": self.consecutive_misses,
            "status": self.standing.status.value,
            "reason": self.standing.reason,
            "bailout_passes": self.bailout_passes,
        }


def window_days(today: date, size: int) -> List[date]:
    """``size`` calendar days ending at ``today``, oldest first."""
    return [today - timedelta(days=offset) for offset in range(size - 1, -1, -1)]


class ProgressService:
    """Turns a user's live activity feed into stored daily progress."""

    def __init__(
        self,
        users: UserRepository,
        progress: ProgressRepository,
        activities: ActivityRepository,
        feed: ActivityFeed,
        window_size: int = 30,
        miss_lookback: int = 10,
        page_size: int = 200,
    ):
        self.users = users
        self.progress = progress
        self.activities = activities
        self.feed = feed
        self.window_size = window_size
        self.page_size = page_size
        self.analyzer = StreakAnalyzer(progress, lookback=miss_lookback)
        self.elimination = EliminationController(users)

    def evaluate_days(
        self,
        user_id: int,
        activities: Sequence[Activity],
        days: Sequence[date],
        today: date,
    ) -> List[DayEvaluation]:
        """Evaluate and upsert each day. Days excused by a bailout stay excused."""
        evaluations = []
        for day in days:
            required = required_distance(day)
            runs = runs_for_date(activities, day)
            goal = check_daily_goal(runs, required)

            existing = self.progress.get(user_id, day)
            status = derive_day_status(day, today, goal, existing.status if existing else None)

            self.progress.upsert(user_id, day, required, goal.total_distance, status)
            evaluations.append(DayEvaluation(
                date=day,
                required_distance=required,
                total_distance=goal.total_distance,
                goal_met=goal.goal_met,
                shortfall=goal.shortfall,
                status=status,
                runs=runs,
            ))
        return evaluations

    def apply_standing(self, user_id: int, today: date) -> Tuple[int, StreakStatus]:
        """Consecutive misses as of ``today`` and the elimination verdict."""
        misses = self.analyzer.consecutive_misses(user_id, today)
        return misses, self.elimination.validate(user_id, misses, today)

    async def refresh(self, user: User, today: Optional[date] = None) -> ProgressReport:
        """
        Re-derive the progress window for ``user`` from the live feed.

        Raises:
            ProviderError: If the feed cannot be read; nothing is written
        """
        today = today or utc_today()
        activities = await self.feed.fetch(user, limit=self.page_size)

        self.activities.save_activities(user.id, activities)
        days = self.evaluate_days(user.id, activities, window_days(today, self.window_size), today)
        misses, standing = self.apply_standing(user.id, today)

        logger.debug(f"Evaluated {len(days)} days for user {user.id}: {misses} consecutive misses")
        return ProgressReport(
            user_id=user.id,
            days=days,
            consecutive_misses=misses,
            standing=standing,
            bailout_passes=self.users.get_bailout_passes(user.id),
        )
