"""Tests for the challenge database and its repositories."""

import sqlite3
from datetime import date, datetime, timedelta, timezone

import pytest

from run_challenge.db.connection_pool import SQLiteConnectionPool
from run_challenge.db.database import ChallengeDatabase
from run_challenge.exceptions import UserNotFoundError
from run_challenge.models import AgeProfile, DayStatus

from conftest import make_activity


class TestChallengeDatabase:
    """Tests for schema creation and lifecycle."""

    def test_creates_tables(self, db):
        with db.connection() as conn:
            names = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
        assert {"users", "activities", "daily_progress"} <= names

    def test_reopen_keeps_data(self, temp_db_path, make_user):
        make_user()
        with ChallengeDatabase(temp_db_path) as reopened:
            assert reopened.get_stats()["users"] == 1

    def test_closed_database_rejects_use(self, temp_db_path):
        database = ChallengeDatabase(temp_db_path)
        database.close()
        assert not database.is_open
        with pytest.raises(RuntimeError):
            with database.connection():
                pass

    def test_failed_block_rolls_back(self, db, make_user):
        user = make_user()
        with pytest.raises(sqlite3.IntegrityError):
            with db.connection() as conn:
                conn.execute("UPDATE users SET firstname = 'Changed' WHERE id = ?", (user.id,))
                conn.execute(
                    "INSERT INTO daily_progress (user_id, date, required_distance, completed_distance, status) "
                    "VALUES (?, '2026-03-01', 3.01, 0, 'unknown')",
                    (user.id,),
                )
        with db.connection() as conn:
            row = conn.execute("SELECT firstname FROM users WHERE id = ?", (user.id,)).fetchone()
        assert row["firstname"] == "Runner"


class TestConnectionPool:
    def test_returns_connections(self, temp_db_path):
        pool = SQLiteConnectionPool(temp_db_path, pool_size=2)
        with pool.get_connection():
            assert pool.available_connections == 1
        assert pool.available_connections == 2
        pool.close()
        assert pool.is_closed


class TestUserRepository:
    """Tests for participant storage."""

    def test_save_user_defaults(self, make_user):
        user = make_user("Ada", "Zhou")
        assert user.id > 0
        assert user.bailout_passes == 4
        assert user.elimination_date is None
        assert user.profile_complete is False
        assert user.name == "Ada Zhou"

    def test_relogin_refreshes_tokens_only(self, user_repo, make_user):
        user = make_user("Ada", "Zhou", strava_id="777")
        user_repo.use_bailout_pass(user.id)

        again = user_repo.save_user("777", "Renamed", "Person", "new-access", "new-refresh", 123, bailout_passes=4)

        assert again.id == user.id
        assert again.access_token == "new-access"
        assert again.refresh_token == "new-refresh"
        assert again.token_expires_at == 123
        assert again.firstname == "Ada"
        assert again.bailout_passes == 3

    def test_get_by_strava_id(self, user_repo, make_user):
        user = make_user(strava_id="555")
        assert user_repo.get_by_strava_id("555").id == user.id
        assert user_repo.get_by_strava_id("missing") is None

    def test_require_missing(self, user_repo):
        with pytest.raises(UserNotFoundError):
            user_repo.require(999)

    def test_get_all_in_signup_order(self, user_repo, make_user):
        a, b = make_user("A"), make_user("B")
        assert [u.id for u in user_repo.get_all()] == [a.id, b.id]

    def test_use_bailout_pass(self, user_repo, make_user):
        user = make_user(bailout_passes=2)
        assert user_repo.use_bailout_pass(user.id) is True
        assert user_repo.get_bailout_passes(user.id) == 1

    def test_use_bailout_pass_at_zero_is_noop(self, user_repo, make_user):
        user = make_user(bailout_passes=0)
        assert user_repo.use_bailout_pass(user.id) is False
        assert user_repo.get_bailout_passes(user.id) == 0

    def test_eliminate_user_overwrites(self, user_repo, make_user):
        user = make_user()
        user_repo.eliminate_user(user.id, date(2026, 2, 1), "Three consecutive missed days")
        user_repo.eliminate_user(user.id, date(2026, 2, 2), "Three consecutive missed days")

        stored = user_repo.require(user.id)
        assert stored.elimination_date == date(2026, 2, 2)
        assert stored.elimination_reason == "Three consecutive missed days"
        assert stored.is_eliminated

    def test_update_profile(self, user_repo, make_user):
        user = make_user()
        updated = user_repo.update_profile(user.id, AgeProfile(35, "M", 8.0))
        assert updated.profile_complete is True
        assert updated.profile == AgeProfile(35, "M", 8.0)

    def test_update_profile_missing_user(self, user_repo):
        with pytest.raises(UserNotFoundError):
            user_repo.update_profile(42, AgeProfile(35, "M", 8.0))

    def test_update_tokens(self, user_repo, make_user):
        user = make_user()
        user_repo.update_tokens(user.id, "a2", "r2", 99)
        stored = user_repo.require(user.id)
        assert (stored.access_token, stored.refresh_token, stored.token_expires_at) == ("a2", "r2", 99)


class TestProgressRepository:
    """Tests for the per-day progress store."""

    def test_upsert_then_range_round_trip(self, progress_repo, make_user):
        user = make_user()
        day = date(2026, 3, 7)
        progress_repo.upsert(user.id, day, 3.07, 3.5, DayStatus.COMPLETED)

        records = progress_repo.range(user.id, day, day)

        assert len(records) == 1
        rec = records[0]
        assert (rec.user_id, rec.date, rec.required_distance, rec.completed_distance, rec.status) == (
            user.id, day, 3.07, 3.5, DayStatus.COMPLETED,
        )

    def test_upsert_overwrites_status_and_distance(self, progress_repo, make_user):
        user = make_user()
        day = date(2026, 3, 7)
        progress_repo.upsert(user.id, day, 3.07, 0.0, DayStatus.PENDING)
        progress_repo.upsert(user.id, day, 9.99, 3.2, DayStatus.COMPLETED)

        records = progress_repo.range(user.id, day, day)

        assert len(records) == 1
        assert records[0].status == DayStatus.COMPLETED
        assert records[0].completed_distance == 3.2
        assert records[0].required_distance == 3.07

    def test_range_is_newest_first_and_bounded(self, progress_repo, make_user):
        user = make_user()
        start = date(2026, 3, 1)
        for i in range(5):
            progress_repo.upsert(user.id, start + timedelta(days=i), 3.0, 0.0, DayStatus.MISSED)

        records = progress_repo.range(user.id, date(2026, 3, 2), date(2026, 3, 4))

        assert [r.date.day for r in records] == [4, 3, 2]

    def test_range_is_per_user(self, progress_repo, make_user):
        a, b = make_user(), make_user()
        progress_repo.upsert(a.id, date(2026, 3, 1), 3.01, 0.0, DayStatus.MISSED)
        assert progress_repo.range(b.id, date(2026, 3, 1), date(2026, 3, 1)) == []

    def test_recent_limit(self, progress_repo, make_user):
        user = make_user()
        start = date(2026, 3, 1)
        for i in range(12):
            progress_repo.upsert(user.id, start + timedelta(days=i), 3.0, 0.0, DayStatus.MISSED)

        records = progress_repo.recent(user.id, date(2026, 3, 10), limit=3)

        assert [r.date.day for r in records] == [10, 9, 8]

    def test_get(self, progress_repo, make_user):
        user = make_user()
        progress_repo.upsert(user.id, date(2026, 3, 1), 3.01, 0.0, DayStatus.BAILOUT)
        assert progress_repo.get(user.id, date(2026, 3, 1)).status == DayStatus.BAILOUT
        assert progress_repo.get(user.id, date(2026, 3, 2)) is None

    def test_rejects_unknown_status(self, progress_repo, make_user):
        user = make_user()
        with pytest.raises(ValueError):
            progress_repo.upsert(user.id, date(2026, 3, 1), 3.01, 0.0, "skipped")


class TestActivityRepository:
    """Tests for the activity cache."""

    def test_save_and_list_newest_first(self, activity_repo, make_user):
        user = make_user()
        older = make_activity(date(2026, 3, 1), 3.0, activity_id=1)
        newer = make_activity(date(2026, 3, 2), 4.0, activity_id=2)

        assert activity_repo.save_activities(user.id, [older, newer]) == 2

        cached = activity_repo.get_activities_by_user(user.id)
        assert [a.id for a in cached] == [2, 1]
        assert cached[0].distance_miles == 4.0
        assert cached[0].start_date == datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

    def test_unique_per_strava_id(self, activity_repo, make_user):
        user = make_user()
        activity_repo.save_activity(user.id, make_activity(date(2026, 3, 1), 3.0, activity_id=7))
        activity_repo.save_activity(user.id, make_activity(date(2026, 3, 1), 3.5, activity_id=7))

        cached = activity_repo.get_activities_by_user(user.id)
        assert len(cached) == 1
        assert cached[0].distance_miles == 3.5

    def test_limit(self, activity_repo, make_user):
        user = make_user()
        activity_repo.save_activities(
            user.id,
            [make_activity(date(2026, 3, d), 3.0, activity_id=d) for d in range(1, 6)],
        )
        assert len(activity_repo.get_activities_by_user(user.id, limit=2)) == 2
