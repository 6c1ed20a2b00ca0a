"""SQLite-backed repository for challenge participants.

Covers Strava login upserts, profile setup, the bailout pass counter and
elimination fields.
"""

import logging
import sqlite3
from datetime import date, datetime
from typing import List, Optional

from ...exceptions import UserNotFoundError
from ...models import AgeProfile, User
from ..database import ChallengeDatabase

logger = logging.getLogger(__name__)


class UserRepository:
    """
    SQLite-backed repository for User entities.

    Users are keyed locally by an integer id and externally by their Strava
    athlete id. They are never deleted.
    """

    def __init__(self, db: ChallengeDatabase):
        self.db = db

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert a database row to a User entity."""
        created_at = row["created_at"]
        if isinstance(created_at, str) and created_at:
            created_at = datetime.fromisoformat(created_at)

        elimination_date = row["elimination_date"]
        if elimination_date:
            elimination_date = date.fromisoformat(elimination_date)

        return User(
            id=row["id"],
            strava_id=row["strava_id"],
            firstname=row["firstname"],
            lastname=row["lastname"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            token_expires_at=row["token_expires_at"],
            bailout_passes=row["bailout_passes"] if row["bailout_passes"] is not None else 0,
            elimination_date=elimination_date or None,
            elimination_reason=row["elimination_reason"] if elimination_date else None,
            age=row["age"],
            sex=row["sex"],
            baseline_mile_pace=row["baseline_mile_pace"],
            profile_complete=bool(row["profile_complete"]),
            created_at=created_at or None,
        )

    def save_user(
        self,
        strava_id: str,
        firstname: str,
        lastname: str,
        access_token: str,
        refresh_token: str,
        token_expires_at: int,
        bailout_passes: int = 4,
    ) -> User:
        """
        Create a user on first login, or refresh an existing user's tokens.

        Names and challenge state of an existing user are left untouched.

        Returns:
            The stored User entity
        """
        with self.db.connection() as conn:
            conn.execute("""
                INSERT INTO users
                (strava_id, firstname, lastname, access_token, refresh_token,
                 token_expires_at, bailout_passes)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(strava_id)
                DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    token_expires_at = excluded.token_expires_at
            """, (
                str(strava_id),
                firstname,
                lastname,
                access_token,
                refresh_token,
                token_expires_at,
                bailout_passes,
            ))
            row = conn.execute(
                "SELECT * FROM users WHERE strava_id = ?", (str(strava_id),)
            ).fetchone()

        return self._row_to_user(row)

    def update_tokens(
        self,
        user_id: int,
        access_token: str,
        refresh_token: str,
        token_expires_at: int,
    ) -> None:
        """Store refreshed OAuth tokens."""
        with self.db.connection() as conn:
            conn.execute("""
                UPDATE users
                SET access_token = ?, refresh_token = ?, token_expires_at = ?
                WHERE id = ?
            """, (access_token, refresh_token, token_expires_at, user_id))

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self.db.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_by_strava_id(self, strava_id: str) -> Optional[User]:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE strava_id = ?", (str(strava_id),)
            ).fetchone()
        return self._row_to_user(row) if row else None

    def require(self, user_id: int) -> User:
        """Get a user or raise UserNotFoundError."""
        user = self.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_all(self) -> List[User]:
        """All users in sign-up order."""
        with self.db.connection() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, id").fetchall()
        return [self._row_to_user(row) for row in rows]

    # ------------------------------------------------------------------
    # Bailout passes
    # ------------------------------------------------------------------

    def use_bailout_pass(self, user_id: int) -> bool:
        """
        Spend one bailout pass if any remain.

        Returns:
            True if a pass was spent, False if the balance was already zero
        """
        with self.db.connection() as conn:
            cursor = conn.execute("""
                UPDATE users
                SET bailout_passes = bailout_passes - 1
                WHERE id = ? AND bailout_passes > 0
            """, (user_id,))
            return cursor.rowcount > 0

    def get_bailout_passes(self, user_id: int) -> int:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT bailout_passes FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return row["bailout_passes"] if row else 0

    # ------------------------------------------------------------------
    # Elimination and profile
    # ------------------------------------------------------------------

    def eliminate_user(self, user_id: int, elimination_date: date, reason: str) -> None:
        """Record elimination. Repeated calls overwrite date and reason."""
        with self.db.connection() as conn:
            conn.execute("""
                UPDATE users
                SET elimination_date = ?, elimination_reason = ?
                WHERE id = ?
            """, (elimination_date.isoformat(), reason, user_id))

    def update_profile(self, user_id: int, profile: AgeProfile) -> User:
        """Save the age-grading profile and mark it complete."""
        with self.db.connection() as conn:
            cursor = conn.execute("""
                UPDATE users
                SET age = ?, sex = ?, baseline_mile_pace = ?, profile_complete = 1
                WHERE id = ?
            """, (profile.age, profile.sex, profile.baseline_mile_pace, user_id))
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)
        return self.require(user_id)
