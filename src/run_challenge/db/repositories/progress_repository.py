"""SQLite-backed store for daily progress records.

One row per (user, date). Re-evaluating a day overwrites its completed
distance and status; the required distance written first is kept.
"""

import sqlite3
from datetime import date
from typing import List, Optional

from ...models import DailyProgressRecord, DayStatus
from ..database import ChallengeDatabase


class ProgressRepository:
    """Upsert and range queries over ``daily_progress``."""

    def __init__(self, db: ChallengeDatabase):
        self.db = db

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> DailyProgressRecord:
        return DailyProgressRecord(
            user_id=row["user_id"],
            date=date.fromisoformat(row["date"]),
            required_distance=row["required_distance"],
            completed_distance=row["completed_distance"],
            status=DayStatus(row["status"]),
        )

    def upsert(
        self,
        user_id: int,
        day: date,
        required_distance: float,
        completed_distance: float,
        status: DayStatus,
    ) -> None:
        """Insert or overwrite the record for (user_id, day)."""
        with self.db.connection() as conn:
            conn.execute("""
                INSERT INTO daily_progress
                (user_id, date, required_distance, completed_distance, status)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id, date)
                DO UPDATE SET
                    completed_distance = excluded.completed_distance,
                    status = excluded.status
            """, (
                user_id,
                day.isoformat(),
                required_distance,
                completed_distance,
                DayStatus(status).value,
            ))

    def get(self, user_id: int, day: date) -> Optional[DailyProgressRecord]:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM daily_progress WHERE user_id = ? AND date = ?",
                (user_id, day.isoformat()),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def range(self, user_id: int, start: date, end: date) -> List[DailyProgressRecord]:
        """Records with start <= date <= end, newest first."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM daily_progress
                WHERE user_id = ? AND date >= ? AND date <= ?
                ORDER BY date DESC
            """, (user_id, start.isoformat(), end.isoformat())).fetchall()
        return [self._row_to_record(row) for row in rows]

    def recent(self, user_id: int, as_of: date, limit: int = 10) -> List[DailyProgressRecord]:
        """The ``limit`` most recent records on or before ``as_of``, newest first."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM daily_progress
                WHERE user_id = ? AND date <= ?
                ORDER BY date DESC
                LIMIT ?
            """, (user_id, as_of.isoformat(), limit)).fetchall()
        return [self._row_to_record(row) for row in rows]
