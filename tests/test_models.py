"""Tests for challenge entities."""

from datetime import date, datetime, timezone

import pytest

from run_challenge.models import AgeProfile, Activity, DailyProgressRecord, DayStatus, User

from conftest import strava_payload


class TestActivityFromApi:
    """Tests for parsing Strava summary activities."""

    def test_converts_meters_to_miles(self):
        activity = Activity.from_api_response({
            "id": 42,
            "name": "Tempo",
            "type": "Run",
            "distance": 5000,
            "moving_time": 1500,
            "elapsed_time": 1560,
            "start_date": "2026-03-07T06:00:00Z",
        })

        assert activity.distance_miles == pytest.approx(3.106855)
        assert activity.start_date == datetime(2026, 3, 7, 6, 0, tzinfo=timezone.utc)
        assert activity.start_day == date(2026, 3, 7)
        assert activity.is_run

    def test_sport_type_fallback(self):
        data = strava_payload(date(2026, 3, 7), 3.0, "VirtualRun")
        del data["type"]
        assert Activity.from_api_response(data).type == "VirtualRun"

    def test_missing_fields_raise(self):
        with pytest.raises(KeyError):
            Activity.from_api_response({"id": 1, "type": "Run"})

    def test_missing_type_raises(self):
        data = strava_payload(date(2026, 3, 7), 3.0)
        del data["type"]
        del data["sport_type"]
        with pytest.raises(KeyError):
            Activity.from_api_response(data)

    def test_pace(self):
        data = strava_payload(date(2026, 3, 7), 2.0)
        activity = Activity.from_api_response(data)
        assert activity.pace_min_per_mile == pytest.approx(9.0, rel=1e-3)


class TestUser:
    """Tests for user field validation."""

    def test_elimination_fields_set_together(self):
        with pytest.raises(ValueError):
            User(id=1, strava_id="1", firstname="A", lastname="B", elimination_date=date(2026, 1, 5))

    def test_negative_passes_rejected(self):
        with pytest.raises(ValueError):
            User(id=1, strava_id="1", firstname="A", lastname="B", bailout_passes=-1)

    def test_to_dict_hides_tokens(self):
        user = User(id=1, strava_id="1", firstname="Ada", lastname="Zhou", access_token="secret")
        data = user.to_dict()
        assert "access_token" not in data
        assert "refresh_token" not in data
        assert data["name"] == "Ada Zhou"

    def test_profile(self):
        user = User(id=1, strava_id="1", firstname="A", lastname="B", age=40, sex="F", baseline_mile_pace=9.5)
        assert user.profile == AgeProfile(40, "F", 9.5)
        assert User(id=2, strava_id="2", firstname="A", lastname="B").profile is None


class TestAgeProfile:
    @pytest.mark.parametrize("age,sex,pace", [(0, "M", 8.0), (30, "X", 8.0), (30, "F", 0)])
    def test_rejects_invalid(self, age, sex, pace):
        with pytest.raises(ValueError):
            AgeProfile(age, sex, pace)


def test_progress_record_to_dict():
    rec = DailyProgressRecord(1, date(2026, 3, 7), 3.07, 3.5, DayStatus.COMPLETED)
    assert rec.to_dict() == {
        "user_id": 1,
        "date": "2026-03-07",
        "required_distance": 3.07,
        "completed_distance": 3.5,
        "status": "completed",
    }
