"""Services orchestrating the challenge rules over storage and the activity feed."""

from .auth_service import AuthService, AuthServiceError, InvalidTokenError, TokenExpiredError
from .bailout import BailoutOutcome, BailoutService
from .dashboard_service import DashboardService, get_user_color
from .elimination import EliminationController, evaluate_elimination
from .feed import ActivityFeed
from .progress_service import DayEvaluation, ProgressReport, ProgressService

__all__ = [
    "ActivityFeed",
    "AuthService",
    "AuthServiceError",
    "BailoutOutcome",
    "BailoutService",
    "DashboardService",
    "DayEvaluation",
    "EliminationController",
    "InvalidTokenError",
    "ProgressReport",
    "ProgressService",
    "TokenExpiredError",
    "evaluate_elimination",
    "get_user_color",
]
