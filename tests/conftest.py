"""Shared fixtures: a throwaway challenge database and builders for test data."""

import os
import tempfile
from datetime import date, datetime, timezone
from typing import Optional

import pytest

from run_challenge.db.database import ChallengeDatabase
from run_challenge.db.repositories import (
    ActivityRepository,
    ProgressRepository,
    UserRepository,
)
from run_challenge.models import METERS_TO_MILES, Activity, DailyProgressRecord, DayStatus


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except OSError:
            pass


@pytest.fixture
def db(temp_db_path):
    """Open challenge database, closed after the test."""
    database = ChallengeDatabase(temp_db_path, pool_size=2)
    yield database
    database.close()


@pytest.fixture
def user_repo(db):
    return UserRepository(db)


@pytest.fixture
def progress_repo(db):
    return ProgressRepository(db)


@pytest.fixture
def activity_repo(db):
    return ActivityRepository(db)


@pytest.fixture
def make_user(user_repo):
    """Factory storing a user with distinct Strava id and tokens."""
    counter = {"n": 0}

    def _make(firstname: str = "Runner", lastname: str = "Zhou", bailout_passes: int = 4, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        return user_repo.save_user(
            strava_id=kwargs.get("strava_id", str(1000 + n)),
            firstname=firstname,
            lastname=lastname,
            access_token=kwargs.get("access_token", f"access-{n}"),
            refresh_token=kwargs.get("refresh_token", f"refresh-{n}"),
            token_expires_at=kwargs.get("token_expires_at", 4102444800),
            bailout_passes=bailout_passes,
        )

    return _make


def make_activity(
    day: date,
    miles: float,
    activity_type: str = "Run",
    activity_id: Optional[int] = None,
    moving_time: Optional[int] = None,
    hour: int = 12,
) -> Activity:
    """Activity starting at ``hour`` UTC on ``day``; default pace 9:00/mi."""
    return Activity(
        id=activity_id if activity_id is not None else int(day.strftime("%Y%m%d")) * 100 + hour,
        name=f"{activity_type} on {day.isoformat()}",
        type=activity_type,
        distance_miles=miles,
        moving_time=moving_time if moving_time is not None else int(miles * 9 * 60),
        elapsed_time=moving_time if moving_time is not None else int(miles * 9 * 60),
        start_date=datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc),
    )


def strava_payload(day: date, miles: float, activity_type: str = "Run", activity_id: int = 1) -> dict:
    """Raw Strava summary activity as returned by /athlete/activities."""
    return {
        "id": activity_id,
        "name": "Morning Run",
        "type": activity_type,
        "sport_type": activity_type,
        "distance": miles / METERS_TO_MILES,
        "moving_time": int(miles * 9 * 60),
        "elapsed_time": int(miles * 9 * 60) + 30,
        "start_date": f"{day.isoformat()}T07:30:00Z",
        "total_elevation_gain": 12.5,
    }


def record(day: date, status: DayStatus, completed: float = 0.0, user_id: int = 1) -> DailyProgressRecord:
    """In-memory progress record for the pure analyzers."""
    return DailyProgressRecord(
        user_id=user_id,
        date=day,
        required_distance=float(f"{day.month}.{day.day:02d}"),
        completed_distance=completed,
        status=status,
    )
