"""Data models for the running challenge."""

from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


METERS_TO_MILES = 0.000621371

QUALIFYING_TYPES = frozenset({"Run", "VirtualRun"})


class DayStatus(str, Enum):
    """Outcome recorded for a single challenge day."""
    COMPLETED = "completed"
    MISSED = "missed"
    BAILOUT = "bailout"
    PENDING = "pending"


class ChallengeStatus(str, Enum):
    """Standing of a participant derived from consecutive misses."""
    ACTIVE = "active"
    AT_RISK = "at_risk"
    ELIMINATED = "eliminated"


@dataclass
class AgeProfile:
    """Age-grading profile, used by dashboards only."""
    age: int
    sex: str  # 'M' or 'F'
    baseline_mile_pace: float  # minutes per mile

    def __post_init__(self):
        if self.age <= 0:
            raise ValueError(f"age must be positive, got {self.age}")
        if self.sex not in ("M", "F"):
            raise ValueError(f"sex must be 'M' or 'F', got {self.sex!r}")
        if self.baseline_mile_pace <= 0:
            raise ValueError("baseline_mile_pace must be positive")


@dataclass
class User:
    """A challenge participant connected through Strava."""
    id: int
    strava_id: str
    firstname: str
    lastname: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[int] = None
    bailout_passes: int = 4
    elimination_date: Optional[date] = None
    elimination_reason: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[str] = None
    baseline_mile_pace: Optional[float] = None
    profile_complete: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if (self.elimination_date is None) != (self.elimination_reason is None):
            raise ValueError(
                "elimination_date and elimination_reason must be set together"
            )
        if self.bailout_passes < 0:
            raise ValueError("bailout_passes cannot be negative")

    @property
    def name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    @property
    def is_eliminated(self) -> bool:
        return self.elimination_date is not None

    @property
    def profile(self) -> Optional[AgeProfile]:
        if self.age and self.sex and self.baseline_mile_pace:
            return AgeProfile(self.age, self.sex, self.baseline_mile_pace)
        return None

    def to_dict(self) -> dict:
        """Public view of the user; tokens are never included."""
        return {
            "id": self.id,
            "strava_id": self.strava_id,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "name": self.name,
            "bailout_passes": self.bailout_passes,
            "elimination_date": self.elimination_date.isoformat() if self.elimination_date else None,
            "elimination_reason": self.elimination_reason,
            "age": self.age,
            "sex": self.sex,
            "baseline_mile_pace": self.baseline_mile_pace,
            "profile_complete": self.profile_complete,
        }


@dataclass
class DailyProgressRecord:
    """One evaluated challenge day for one user."""
    user_id: int
    date: date
    required_distance: float
    completed_distance: float
    status: DayStatus

    def to_dict(self) -> dict:
        d = asdict(self)
        d["date"] = self.date.isoformat()
        d["status"] = self.status.value
        return d


@dataclass
class Activity:
    """A Strava activity, distance already converted to miles."""
    id: int
    name: str
    type: str
    distance_miles: float
    moving_time: int
    elapsed_time: int
    start_date: datetime
    total_elevation_gain: float = 0.0

    @property
    def is_run(self) -> bool:
        return self.type in QUALIFYING_TYPES

    @property
    def start_day(self) -> date:
        """Calendar day of the start timestamp in UTC."""
        if self.start_date.tzinfo is None:
            return self.start_date.date()
        return self.start_date.astimezone(timezone.utc).date()

    @property
    def pace_min_per_mile(self) -> Optional[float]:
        if self.distance_miles <= 0:
            return None
        return self.moving_time / 60 / self.distance_miles

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "Activity":
        """Parse a Strava activity summary, converting meters to miles.

        Raises:
            KeyError, TypeError, ValueError: If required fields are missing
                or malformed.
        """
        activity_type = data.get("type") or data.get("sport_type")
        if not activity_type:
            raise KeyError("type")
        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            type=activity_type,
            distance_miles=float(data["distance"]) * METERS_TO_MILES,
            moving_time=int(data["moving_time"]),
            elapsed_time=int(data.get("elapsed_time", data["moving_time"])),
            start_date=datetime.fromisoformat(data["start_date"].replace("Z", "+00:00")),
            total_elevation_gain=float(data.get("total_elevation_gain") or 0.0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "distance_miles": round(self.distance_miles, 2),
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "start_date": self.start_date.isoformat(),
            "total_elevation_gain": self.total_elevation_gain,
        }


@dataclass
class GoalCheck:
    """Result of comparing a day's runs with its required distance."""
    total_distance: float
    required_distance: float
    goal_met: bool
    shortfall: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StreakSnapshot:
    """Streaks derived from a progress history."""
    current_streak: int = 0
    longest_streak: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StreakStatus:
    """Elimination standing for a participant."""
    status: ChallengeStatus
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "reason": self.reason}
