"""Daily distance goals.

The required distance for a day is its month and day written as a decimal:
March 7 is 3.07 miles, December 31 is 12.31 miles. Goals therefore climb
through each month and drop back at every month boundary.
"""

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from ..models import Activity, DayStatus, GoalCheck


def utc_today() -> date:
    """Current calendar day in UTC, the calendar activities are bucketed by."""
    return datetime.now(timezone.utc).date()


def required_distance(day: date) -> float:
    """Required miles for a calendar day (``month.dd``)."""
    return float(f"{day.month}.{day.day:02d}")


def check_daily_goal(runs: Iterable[Activity], required: float) -> GoalCheck:
    """Compare the summed distance of a day's runs with the requirement.

    Equality counts as met.
    """
    total = sum(run.distance_miles for run in runs)
    return GoalCheck(
        total_distance=total,
        required_distance=required,
        goal_met=total >= required,
        shortfall=max(0.0, required - total),
    )


def is_qualifying(activity: Activity) -> bool:
    """Only runs and treadmill/virtual runs count toward the goal."""
    return activity.is_run


def runs_for_date(activities: Iterable[Activity], day: date) -> List[Activity]:
    """Qualifying runs that started on ``day`` (UTC)."""
    return [a for a in activities if is_qualifying(a) and a.start_day == day]


def derive_day_status(
    day: date,
    today: date,
    goal: GoalCheck,
    previous: Optional[DayStatus] = None,
) -> DayStatus:
    """Status to record for ``day`` when evaluated on ``today``.

    A day already excused with a bailout pass keeps that status unless the
    runs now cover it, whether it lies in the past, today or the future.
    Otherwise a day still in progress is pending until its goal is met.
    """
    if previous == DayStatus.BAILOUT and not goal.goal_met:
        return DayStatus.BAILOUT
    if day > today:
        return DayStatus.PENDING
    if goal.goal_met:
        return DayStatus.COMPLETED
    if day == today:
        return DayStatus.PENDING
    return DayStatus.MISSED
