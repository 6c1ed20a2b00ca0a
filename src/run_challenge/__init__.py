"""Family daily-distance running challenge tracked through Strava."""

from .analysis import (
    calculate_streaks,
    check_daily_goal,
    count_consecutive_misses,
    determine_winner,
    required_distance,
)
from .db.database import ChallengeDatabase
from .models import Activity, ChallengeStatus, DailyProgressRecord, DayStatus, User

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Database
    "ChallengeDatabase",
    # Models
    "Activity",
    "ChallengeStatus",
    "DailyProgressRecord",
    "DayStatus",
    "User",
    # Rules
    "calculate_streaks",
    "check_daily_goal",
    "count_consecutive_misses",
    "determine_winner",
    "required_distance",
]
