"""Pace improvement against a runner's baseline.

Used by the family dashboard to chart a 7-day rolling average pace as a
percentage gain over the pace the runner entered when setting up their
profile.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from ..models import Activity


ROLLING_WINDOW_DAYS = 7


def average_pace(runs: Sequence[Activity]) -> Optional[float]:
    """Mean of per-run paces in minutes per mile, None without usable runs."""
    paces = [r.pace_min_per_mile for r in runs if r.pace_min_per_mile is not None]
    if not paces:
        return None
    return sum(paces) / len(paces)


def calculate_improvement(avg_pace: float, baseline_pace: float) -> float:
    """Percent by which ``avg_pace`` beats ``baseline_pace`` (negative if slower)."""
    if baseline_pace <= 0:
        return 0.0
    return round((baseline_pace - avg_pace) / baseline_pace * 100, 1)


def _window_runs(activities: Iterable[Activity], day: date) -> List[Activity]:
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    start = datetime.combine(day - timedelta(days=ROLLING_WINDOW_DAYS), time.min, tzinfo=timezone.utc)
    runs = []
    for a in activities:
        if not a.is_run or a.distance_miles <= 0:
            continue
        started = a.start_date if a.start_date.tzinfo else a.start_date.replace(tzinfo=timezone.utc)
        if start <= started <= end:
            runs.append(a)
    return runs


def improvement_series(
    activities: Sequence[Activity],
    days: Sequence[date],
    baseline_pace: float,
) -> List[Optional[float]]:
    """Improvement for each day from runs in the preceding 7 days.

    Days without runs in their window are None so charts can span the gap.
    """
    series: List[Optional[float]] = []
    for day in days:
        pace = average_pace(_window_runs(activities, day))
        series.append(None if pace is None else calculate_improvement(pace, baseline_pace))
    return series
