"""Streak and consecutive-miss analysis over daily progress history.

Only three statuses carry meaning here:
- ``completed`` and ``bailout`` extend a streak and end a miss run
- ``missed`` breaks a streak and extends a miss run

Every other status (``pending``) is stepped over: it neither counts nor
stops a scan.
"""

from datetime import date
from typing import Iterable, List, Protocol, Sequence

from ..models import DailyProgressRecord, DayStatus, StreakSnapshot


STREAK_STATUSES = frozenset({DayStatus.COMPLETED, DayStatus.BAILOUT})

DEFAULT_MISS_LOOKBACK = 10


class ProgressHistory(Protocol):
    """Read side of the progress store used by the analyzer."""

    def recent(self, user_id: int, as_of: date, limit: int = DEFAULT_MISS_LOOKBACK) -> List[DailyProgressRecord]:
        ...


def count_consecutive_misses(records_desc: Iterable[DailyProgressRecord]) -> int:
    """Count leading missed days in a newest-first history."""
    misses = 0
    for record in records_desc:
        if record.status == DayStatus.MISSED:
            misses += 1
        elif record.status in STREAK_STATUSES:
            break
    return misses


def calculate_streaks(records: Sequence[DailyProgressRecord]) -> StreakSnapshot:
    """Current and longest streak of completed/bailout days.

    Runs are counted by position in the date-sorted history, not by
    calendar adjacency; a gap in the records does not break a streak.
    """
    ordered = sorted(records, key=lambda r: r.date)

    longest = 0
    running = 0
    for record in ordered:
        if record.status in STREAK_STATUSES:
            running += 1
            longest = max(longest, running)
        elif record.status == DayStatus.MISSED:
            running = 0

    current = 0
    for record in reversed(ordered):
        if record.status in STREAK_STATUSES:
            current += 1
        elif record.status == DayStatus.MISSED:
            break

    return StreakSnapshot(current_streak=current, longest_streak=longest)


def total_days_run(records: Iterable[DailyProgressRecord]) -> int:
    """Number of days with the goal completed (bailouts excluded)."""
    return sum(1 for r in records if r.status == DayStatus.COMPLETED)


def total_miles(records: Iterable[DailyProgressRecord]) -> float:
    """Miles logged on completed days."""
    return sum(r.completed_distance for r in records if r.status == DayStatus.COMPLETED)


class StreakAnalyzer:
    """Consecutive-miss lookups against a progress store."""

    def __init__(self, history: ProgressHistory, lookback: int = DEFAULT_MISS_LOOKBACK):
        self.history = history
        self.lookback = lookback

    def consecutive_misses(self, user_id: int, as_of: date) -> int:
        records = self.history.recent(user_id, as_of, limit=self.lookback)
        return count_consecutive_misses(records)
