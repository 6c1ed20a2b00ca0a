"""
Migration 001: age-grading profile columns.

Databases created before profiles existed lack users.age, users.sex,
users.baseline_mile_pace and users.profile_complete, and the activity
cache lacks total_elevation_gain. With ``seed_profiles`` set, every user
without a profile gets a placeholder one so dashboards have data to show.

Run it through the CLI: ``run-challenge migrate [--db PATH] [--seed]``.
"""

import logging
import sqlite3
from contextlib import closing
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

MIGRATION_VERSION = "001"
MIGRATION_NAME = "age_profile"

# (table, column, type, default)
PROFILE_COLUMNS = [
    ("users", "age", "INTEGER", None),
    ("users", "sex", "TEXT", None),
    ("users", "baseline_mile_pace", "REAL", None),
    ("users", "profile_complete", "INTEGER", "0"),
    ("activities", "total_elevation_gain", "REAL", "0"),
]

# age, sex, baseline pace in minutes per mile; assigned round-robin by user id
PLACEHOLDER_PROFILES = [
    (18, "M", 7.5),
    (25, "F", 9.0),
    (35, "M", 8.0),
    (45, "F", 9.5),
    (55, "M", 8.5),
]


def table_columns(conn: sqlite3.Connection, table: str) -> Set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


def column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    return column in table_columns(conn, table)


def _add_column(conn: sqlite3.Connection, table: str, column: str, column_type: str, default: Optional[str]) -> None:
    ddl = f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"
    if default is not None:
        ddl += f" DEFAULT {default}"
    conn.execute(ddl)


def seed_placeholder_profiles(conn: sqlite3.Connection) -> int:
    """Fill a placeholder profile for each user without one; returns the count."""
    user_ids = [
        row[0]
        for row in conn.execute(
            "SELECT id FROM users WHERE COALESCE(profile_complete, 0) = 0 ORDER BY id"
        )
    ]
    for index, user_id in enumerate(user_ids):
        age, sex, pace = PLACEHOLDER_PROFILES[index % len(PLACEHOLDER_PROFILES)]
        conn.execute(
            "UPDATE users SET age = ?, sex = ?, baseline_mile_pace = ?, profile_complete = 1 WHERE id = ?",
            (age, sex, pace, user_id),
        )
    return len(user_ids)


def migrate(db_path: str, seed_profiles: bool = False) -> Dict[str, Any]:
    """
    Apply the migration to ``db_path`` in one transaction.

    Safe to run repeatedly: columns already present are skipped.

    Returns:
        ``success``, ``migration`` (version_name), ``columns_added`` as
        ``table.column`` strings, ``profiles_seeded`` and ``errors``. On
        failure nothing is committed.
    """
    added = []
    seeded = 0
    errors = []

    with closing(sqlite3.connect(db_path)) as conn:
        try:
            for table, column, column_type, default in PROFILE_COLUMNS:
                if column_exists(conn, table, column):
                    continue
                _add_column(conn, table, column, column_type, default)
                added.append(f"{table}.{column}")

            if seed_profiles:
                seeded = seed_placeholder_profiles(conn)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Migration {MIGRATION_VERSION} failed on {db_path}: {e}")
            errors.append(str(e))
            added, seeded = [], 0

    return {
        "success": not errors,
        "migration": f"{MIGRATION_VERSION}_{MIGRATION_NAME}",
        "columns_added": added,
        "profiles_seeded": seeded,
        "errors": errors,
    }
