"""Bailout pass redemption.

Redeeming a pass is two separate writes: spend the pass, then mark the
day as ``bailout`` with zero miles. They are not wrapped in one
transaction. If the second write fails the pass stays spent and a
BailoutRecordError reports it.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..analysis import required_distance
from ..db.repositories import ProgressRepository, UserRepository
from ..exceptions import BailoutRecordError, ValidationError
from ..models import DayStatus

logger = logging.getLogger(__name__)


@dataclass
class BailoutOutcome:
    """Result of a redemption attempt."""
    used: bool
    date: date
    passes_remaining: int
    message: str

    def to_dict(self) -> dict:
        return {
            "used": self.used,
            "date": self.date.isoformat(),
            "passes_remaining": self.passes_remaining,
            "message": self.message,
        }


class BailoutService:
    """Spends bailout passes on missed days."""

    def __init__(self, users: UserRepository, progress: ProgressRepository):
        self.users = users
        self.progress = progress

    def redeem(self, user_id: int, day: Optional[date]) -> BailoutOutcome:
        """
        Excuse ``day`` for ``user_id`` with one bailout pass.

        Returns:
            BailoutOutcome with used=False when no passes remain

        Raises:
            ValidationError: If no date was given
            UserNotFoundError: If the user does not exist
            BailoutRecordError: If the pass was spent but the day was not saved
        """
        if day is None:
            raise ValidationError("A date is required to use a bailout pass", field="date")

        self.users.require(user_id)

        if not self.users.use_bailout_pass(user_id):
            return BailoutOutcome(
                used=False,
                date=day,
                passes_remaining=0,
                message="No bailout passes remaining",
            )

        try:
            self.progress.upsert(user_id, day, required_distance(day), 0.0, DayStatus.BAILOUT)
        except sqlite3.Error as e:
            logger.error(f"Bailout pass spent for user {user_id} but {day.isoformat()} not recorded: {e}")
            raise BailoutRecordError(user_id, day.isoformat(), str(e)) from e

        remaining = self.users.get_bailout_passes(user_id)
        logger.info(f"User {user_id} used a bailout pass for {day.isoformat()} ({remaining} left)")
        return BailoutOutcome(
            used=True,
            date=day,
            passes_remaining=remaining,
            message="Bailout pass used successfully",
        )
