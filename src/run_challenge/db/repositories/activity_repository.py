"""SQLite-backed cache of Strava activities.

The live feed stays authoritative for progress; this cache backs the
activity history views.
"""

import sqlite3
from datetime import datetime
from typing import Iterable, List

from ...models import Activity
from ..database import ChallengeDatabase


class ActivityRepository:
    """Stores activities keyed by their Strava id, distance in miles."""

    def __init__(self, db: ChallengeDatabase):
        self.db = db

    @staticmethod
    def _row_to_activity(row: sqlite3.Row) -> Activity:
        return Activity(
            id=int(row["strava_activity_id"]),
            name=row["name"] or "",
            type=row["type"],
            distance_miles=row["distance"],
            moving_time=row["moving_time"],
            elapsed_time=row["elapsed_time"],
            start_date=datetime.fromisoformat(row["start_date"]),
            total_elevation_gain=row["total_elevation_gain"] or 0.0,
        )

    def save_activity(self, user_id: int, activity: Activity) -> None:
        """Insert an activity or refresh its distance and times."""
        self.save_activities(user_id, [activity])

    def save_activities(self, user_id: int, activities: Iterable[Activity]) -> int:
        """Upsert a batch in one transaction. Returns the number written."""
        count = 0
        with self.db.connection() as conn:
            for activity in activities:
                conn.execute("""
                    INSERT INTO activities
                    (user_id, strava_activity_id, name, distance, moving_time,
                     elapsed_time, type, start_date, total_elevation_gain)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(strava_activity_id) DO UPDATE SET
                        distance = excluded.distance,
                        moving_time = excluded.moving_time,
                        elapsed_time = excluded.elapsed_time
                """, (
                    user_id,
                    str(activity.id),
                    activity.name,
                    activity.distance_miles,
                    activity.moving_time,
                    activity.elapsed_time,
                    activity.type,
                    activity.start_date.isoformat(),
                    activity.total_elevation_gain,
                ))
                count += 1
        return count

    def get_activities_by_user(self, user_id: int, limit: int = 30) -> List[Activity]:
        """Most recent cached activities, newest first."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM activities
                WHERE user_id = ?
                ORDER BY start_date DESC
                LIMIT ?
            """, (user_id, limit)).fetchall()
        return [self._row_to_activity(row) for row in rows]
