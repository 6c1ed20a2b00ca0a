"""Elimination decisions from consecutive missed days."""

import logging
from datetime import date

from ..db.repositories import UserRepository
from ..models import ChallengeStatus, StreakStatus

logger = logging.getLogger(__name__)


ELIMINATION_THRESHOLD = 3
AT_RISK_THRESHOLD = 2

ELIMINATED_REASON = "Three consecutive missed days"
AT_RISK_REASON = "Two consecutive misses - one more and you're eliminated!"


def evaluate_elimination(consecutive_misses: int) -> StreakStatus:
    """Standing for a miss count, without touching storage."""
    if consecutive_misses >= ELIMINATION_THRESHOLD:
        return StreakStatus(ChallengeStatus.ELIMINATED, ELIMINATED_REASON)
    if consecutive_misses == AT_RISK_THRESHOLD:
        return StreakStatus(ChallengeStatus.AT_RISK, AT_RISK_REASON)
    return StreakStatus(ChallengeStatus.ACTIVE)


class EliminationController:
    """Applies elimination decisions to users.

    An eliminated verdict is written every time it is reached, so a user
    still at three or more misses on a later evaluation gets the later
    date. Bailout passes are never spent here.
    """

    def __init__(self, users: UserRepository):
        self.users = users

    def validate(self, user_id: int, consecutive_misses: int, today: date) -> StreakStatus:
        status = evaluate_elimination(consecutive_misses)
        if status.status == ChallengeStatus.ELIMINATED:
            self.users.eliminate_user(user_id, today, status.reason)
            logger.info(f"User {user_id} eliminated on {today.isoformat()}: {status.reason}")
        elif status.status == ChallengeStatus.AT_RISK:
            logger.info(f"User {user_id} at risk with {consecutive_misses} consecutive misses")
        return status
