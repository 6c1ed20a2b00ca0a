"""SQLite database for the running challenge."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from .connection_pool import SQLiteConnectionPool


logger = logging.getLogger(__name__)


SCHEMA = """
-- Participants, created on first Strava login
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    strava_id TEXT UNIQUE NOT NULL,
    firstname TEXT NOT NULL,
    lastname TEXT NOT NULL,
    access_token TEXT NOT NULL,
    refresh_token TEXT NOT NULL,
    token_expires_at INTEGER NOT NULL,
    bailout_passes INTEGER DEFAULT 4,
    elimination_date TEXT,
    elimination_reason TEXT,
    age INTEGER,
    sex TEXT,
    baseline_mile_pace REAL,
    profile_complete INTEGER DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Cached Strava activities, distance in miles
CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    strava_activity_id TEXT UNIQUE NOT NULL,
    name TEXT,
    distance REAL NOT NULL,
    moving_time INTEGER NOT NULL,
    elapsed_time INTEGER NOT NULL,
    type TEXT NOT NULL,
    start_date TEXT NOT NULL,
    total_elevation_gain REAL DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

-- One evaluated day per user
CREATE TABLE IF NOT EXISTS daily_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    date TEXT NOT NULL,
    required_distance REAL NOT NULL,
    completed_distance REAL NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('completed', 'missed', 'bailout', 'pending')),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(user_id, date),
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE INDEX IF NOT EXISTS idx_progress_user_date ON daily_progress(user_id, date);
CREATE INDEX IF NOT EXISTS idx_activities_user_start ON activities(user_id, start_date);
"""


class ChallengeDatabase:
    """Owns the connection pool and schema for the challenge tables.

    Construct once at process start and pass it to the repositories;
    call ``close()`` at shutdown.
    """

    def __init__(self, db_path: Union[str, Path] = "challenge.db", pool_size: int = 5):
        self.db_path = Path(db_path)
        self._init_db()
        self._pool: Optional[SQLiteConnectionPool] = SQLiteConnectionPool(self.db_path, pool_size=pool_size)
        logger.info(f"Opened challenge database at {self.db_path}")

    def _init_db(self) -> None:
        """Create tables outside the pool; executescript manages its own commits."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()

    @contextmanager
    def connection(self):
        """Borrow a pooled connection inside a transaction."""
        if self._pool is None:
            raise RuntimeError("Challenge database is closed")
        with self._pool.get_connection() as conn:
            yield conn

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
            logger.info("Closed challenge database")

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def __enter__(self) -> "ChallengeDatabase":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get_stats(self) -> dict:
        """Row counts for status output."""
        with self.connection() as conn:
            users = conn.execute("SELECT COUNT(*) AS cnt FROM users").fetchone()["cnt"]
            days = conn.execute("SELECT COUNT(*) AS cnt FROM daily_progress").fetchone()["cnt"]
            activities = conn.execute("SELECT COUNT(*) AS cnt FROM activities").fetchone()["cnt"]
            date_range = conn.execute(
                "SELECT MIN(date) AS min_date, MAX(date) AS max_date FROM daily_progress"
            ).fetchone()

        return {
            "users": users,
            "progress_days": days,
            "activities": activities,
            "earliest_date": date_range["min_date"],
            "latest_date": date_range["max_date"],
            "db_path": str(self.db_path),
        }
