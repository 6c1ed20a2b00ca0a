"""Pure rules: goals, streaks, winner selection and pace improvement."""

from .goals import (
    utc_today,
    required_distance,
    check_daily_goal,
    is_qualifying,
    runs_for_date,
    derive_day_status,
)
from .streaks import (
    StreakAnalyzer,
    count_consecutive_misses,
    calculate_streaks,
    total_days_run,
    total_miles,
)
from .winner import determine_winner
from .improvement import calculate_improvement, improvement_series

__all__ = [
    "utc_today",
    "required_distance",
    "check_daily_goal",
    "is_qualifying",
    "runs_for_date",
    "derive_day_status",
    "StreakAnalyzer",
    "count_consecutive_misses",
    "calculate_streaks",
    "total_days_run",
    "total_miles",
    "determine_winner",
    "calculate_improvement",
    "improvement_series",
]
