"""Dashboard, calendar, stats and leaderboard view-models.

Everything here is JSON-ready data; rendering is the client's job. The
family dashboard reads each runner's live feed only for the pace
improvement chart, and a runner whose feed fails gets a chart of None
values instead of failing the page.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..analysis import (
    StreakAnalyzer,
    calculate_improvement,
    calculate_streaks,
    check_daily_goal,
    derive_day_status,
    determine_winner,
    improvement_series,
    required_distance,
    runs_for_date,
    total_days_run,
    total_miles,
    utc_today,
)
from ..analysis.improvement import ROLLING_WINDOW_DAYS, average_pace
from ..db.repositories import ActivityRepository, ProgressRepository, UserRepository
from ..exceptions import ProfileIncompleteError, ProviderError
from ..models import Activity, DailyProgressRecord, DayStatus, StreakStatus, User
from .elimination import EliminationController
from .feed import ActivityFeed
from .progress_service import window_days

logger = logging.getLogger(__name__)


USER_COLORS = [
    "#FC5200",
    "#007bff",
    "#28a745",
    "#6f42c1",
    "#e83e8c",
    "#17a2b8",
    "#ffc107",
    "#20c997",
]

# Small page is enough for today's runs on the personal dashboard
DASHBOARD_FEED_LIMIT = 10
ACTIVITIES_FEED_LIMIT = 30


def get_user_color(user_id: int) -> str:
    """Stable chart color for a user."""
    return USER_COLORS[(user_id - 1) % len(USER_COLORS)]


def rank_standings(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Active runners first, then by completed days, most first."""
    return sorted(rows, key=lambda r: (r["eliminated"], -r["total_days_run"]))


def format_pace(minutes_per_mile: Optional[float]) -> Optional[str]:
    """``8.5`` -> ``"8:30"``."""
    if minutes_per_mile is None:
        return None
    whole = int(minutes_per_mile)
    seconds = int(round((minutes_per_mile - whole) * 60))
    if seconds == 60:
        whole, seconds = whole + 1, 0
    return f"{whole}:{seconds:02d}"


def run_stats(activities: Sequence[Activity]) -> Dict[str, Any]:
    """Totals, averages and bests over the qualifying runs in a feed page."""
    runs = [a for a in activities if a.is_run]
    paced = [r for r in runs if r.pace_min_per_mile is not None]

    total_distance = sum(r.distance_miles for r in runs)
    avg_pace = average_pace(paced)
    longest = max(runs, key=lambda r: r.distance_miles, default=None)
    fastest = min(paced, key=lambda r: r.pace_min_per_mile, default=None)

    return {
        "run_count": len(runs),
        "total_distance": round(total_distance, 2),
        "total_moving_time": sum(r.moving_time for r in runs),
        "total_elevation_gain": round(sum(r.total_elevation_gain for r in runs), 1),
        "average_distance": round(total_distance / len(runs), 2) if runs else 0.0,
        "average_pace": format_pace(avg_pace),
        "longest_run": longest.to_dict() if longest else None,
        "fastest_run": fastest.to_dict() if fastest else None,
        "fastest_pace": format_pace(fastest.pace_min_per_mile) if fastest else None,
    }


class DashboardService:
    """Builds the read-side views over stored progress and the live feed."""

    def __init__(
        self,
        users: UserRepository,
        progress: ProgressRepository,
        activities: ActivityRepository,
        feed: ActivityFeed,
        challenge_start: date,
        window_size: int = 30,
        miss_lookback: int = 10,
        page_size: int = 200,
    ):
        self.users = users
        self.progress = progress
        self.activities = activities
        self.feed = feed
        self.challenge_start = challenge_start
        self.window_size = window_size
        self.page_size = page_size
        self.analyzer = StreakAnalyzer(progress, lookback=miss_lookback)
        self.elimination = EliminationController(users)

    def _history(self, user_id: int, today: date) -> List[DailyProgressRecord]:
        return self.progress.range(user_id, today - timedelta(days=self.window_size), today)

    def _standing(self, user_id: int, today: date) -> Tuple[int, StreakStatus]:
        misses = self.analyzer.consecutive_misses(user_id, today)
        return misses, self.elimination.validate(user_id, misses, today)

    def _summary(self, user: User, history: List[DailyProgressRecord], today: date) -> Dict[str, Any]:
        streaks = calculate_streaks(history)
        misses, standing = self._standing(user.id, today)
        # Elimination may have just been written
        user = self.users.require(user.id)
        return {
            "id": user.id,
            "name": user.name,
            "firstname": user.firstname,
            "total_days_run": total_days_run(history),
            "total_miles": round(total_miles(history), 2),
            "current_streak": streaks.current_streak,
            "longest_streak": streaks.longest_streak,
            "bailout_passes": user.bailout_passes,
            "consecutive_misses": misses,
            "status": standing.status.value,
            "reason": standing.reason,
            "eliminated": user.is_eliminated,
            "elimination_date": user.elimination_date.isoformat() if user.elimination_date else None,
            "elimination_reason": user.elimination_reason,
            "color": get_user_color(user.id),
        }

    async def _improvement(self, user: User, days: Sequence[date]) -> List[Optional[float]]:
        if user.profile is None or not user.access_token:
            return []
        try:
            activities = await self.feed.fetch(user, limit=self.page_size)
        except ProviderError as e:
            logger.warning(f"No improvement data for user {user.id}: {e.message}")
            return [None] * len(days)
        return improvement_series(activities, days, user.baseline_mile_pace)

    async def family(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Whole-family overview with cumulative charts over the last 30 days."""
        today = today or utc_today()
        days = window_days(today, self.window_size)

        standings = []
        series = []
        today_completed = 0
        days_completed = 0

        for user in self.users.get_all():
            history = self._history(user.id, today)
            by_date = {r.date: r for r in history}
            summary = self._summary(user, history, today)

            today_record = by_date.get(today)
            summary["today_complete"] = bool(today_record and today_record.status == DayStatus.COMPLETED)
            if summary["today_complete"]:
                today_completed += 1
            days_completed += summary["total_days_run"]

            cumulative_days: List[int] = []
            cumulative_miles: List[float] = []
            day_count, miles = 0, 0.0
            for day in days:
                record = by_date.get(day)
                if record and record.status == DayStatus.COMPLETED:
                    day_count += 1
                    miles += record.completed_distance
                cumulative_days.append(day_count)
                cumulative_miles.append(round(miles, 2))

            standings.append(summary)
            series.append({
                "user_id": user.id,
                "label": user.firstname,
                "color": summary["color"],
                "days_completed": cumulative_days,
                "total_miles": cumulative_miles,
                "improvement": await self._improvement(user, days),
            })

        possible = len(standings) * self.window_size
        return {
            "date": today.isoformat(),
            "today_required": required_distance(today),
            "days_into_challenge": (today - self.challenge_start).days,
            "participants": len(standings),
            "today_completed_count": today_completed,
            "overall_completion_rate": round(days_completed / possible * 100, 1) if possible else 0.0,
            "standings": rank_standings(standings),
            "chart": {
                "dates": [d.isoformat() for d in days],
                "series": series,
            },
        }

    async def personal(self, user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """
        One runner's dashboard: today's goal, streaks and standing.

        Raises:
            ProfileIncompleteError: If the age-grading profile is not set up
            ProviderError: If the feed cannot be read
        """
        if not user.profile_complete:
            raise ProfileIncompleteError(user.id)

        today = today or utc_today()
        activities = await self.feed.fetch(user, limit=DASHBOARD_FEED_LIMIT)
        todays_runs = runs_for_date(activities, today)
        goal = check_daily_goal(todays_runs, required_distance(today))

        history = self._history(user.id, today)
        summary = self._summary(user, history, today)

        profile = user.profile
        current_pace = average_pace([
            a for a in activities
            if a.is_run and a.distance_miles > 0
            and today - timedelta(days=ROLLING_WINDOW_DAYS) <= a.start_day <= today
        ])
        improvement = None
        if profile is not None and current_pace is not None:
            improvement = calculate_improvement(current_pace, profile.baseline_mile_pace)

        return {
            **summary,
            "today": {
                "date": today.isoformat(),
                **goal.to_dict(),
                "runs": [r.to_dict() for r in todays_runs],
            },
            "profile": {
                "age": user.age,
                "sex": user.sex,
                "baseline_pace": format_pace(user.baseline_mile_pace),
                "current_avg_pace": format_pace(current_pace),
                "improvement": improvement,
            },
        }

    async def calendar(self, user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """Status of each day in the window, derived from the live feed without writing."""
        today = today or utc_today()
        activities = await self.feed.fetch(user, limit=self.page_size)

        stored = {r.date: r.status for r in self._history(user.id, today)}
        calendar_days = []
        for day in window_days(today, self.window_size):
            required = required_distance(day)
            goal = check_daily_goal(runs_for_date(activities, day), required)
            status = derive_day_status(day, today, goal, stored.get(day))
            calendar_days.append({
                "date": day.isoformat(),
                "status": status.value,
                "required_distance": required,
                "total_distance": round(goal.total_distance, 2),
            })

        return {"user_id": user.id, "days": calendar_days}

    async def stats(self, user: User, today: Optional[date] = None) -> Dict[str, Any]:
        """Lifetime-of-page running stats plus streaks."""
        today = today or utc_today()
        activities = await self.feed.fetch(user, limit=self.page_size)
        history = self._history(user.id, today)
        streaks = calculate_streaks(history)
        return {
            "user_id": user.id,
            **run_stats(activities),
            "current_streak": streaks.current_streak,
            "longest_streak": streaks.longest_streak,
            "total_days_run": total_days_run(history),
        }

    async def recent_activities(self, user: User) -> List[Dict[str, Any]]:
        """Latest runs from the feed; falls back to the cache when the feed is down."""
        try:
            activities = await self.feed.fetch(user, limit=ACTIVITIES_FEED_LIMIT)
        except ProviderError as e:
            logger.warning(f"Serving cached activities for user {user.id}: {e.message}")
            activities = self.activities.get_activities_by_user(user.id, limit=ACTIVITIES_FEED_LIMIT)
        return [a.to_dict() for a in activities if a.is_run]

    def leaderboard(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Public ranking and current champion, from stored progress only."""
        today = today or utc_today()
        users = self.users.get_all()
        progress_by_user = {u.id: self._history(u.id, today) for u in users}

        rows = [self._summary(u, progress_by_user[u.id], today) for u in users]
        # Elimination fields may have changed while summarising
        users = self.users.get_all()
        winner = determine_winner(users, progress_by_user)

        return {
            "date": today.isoformat(),
            "winner": winner.to_dict() if winner else None,
            "standings": rank_standings(rows),
        }
