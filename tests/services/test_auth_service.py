"""Tests for session token handling."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from run_challenge.config import Settings
from run_challenge.services import AuthService, InvalidTokenError, TokenExpiredError


SECRET = "test-secret-key-with-at-least-32-characters"


@pytest.fixture
def settings():
    return Settings(jwt_secret_key=SECRET, access_token_expire_minutes=60)


@pytest.fixture
def auth_service(settings):
    return AuthService(settings)


class TestAccessTokens:
    """Tests for creating and verifying access tokens."""

    def test_round_trip_user_id(self, auth_service):
        token = auth_service.create_access_token(7)
        assert auth_service.user_id_from_token(token) == 7

    def test_payload_claims(self, auth_service):
        payload = auth_service.verify_access_token(auth_service.create_access_token(7))
        assert payload["sub"] == "7"
        assert payload["type"] == "access"
        assert payload["exp"] > payload["iat"]

    def test_additional_claims(self, auth_service):
        token = auth_service.create_access_token(7, {"name": "Ada"})
        assert auth_service.verify_access_token(token)["name"] == "Ada"

    def test_expires_in(self, auth_service):
        assert auth_service.expires_in == 3600

    def test_expired_token(self, auth_service):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "7", "type": "access", "exp": past, "iat": past - timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenExpiredError):
            auth_service.verify_access_token(token)

    def test_wrong_secret(self, auth_service):
        other = AuthService(Settings(jwt_secret_key="another-secret-key-with-32-characters!!"))
        with pytest.raises(InvalidTokenError):
            auth_service.verify_access_token(other.create_access_token(7))

    def test_garbage_token(self, auth_service):
        with pytest.raises(InvalidTokenError):
            auth_service.verify_access_token("not-a-jwt")

    def test_wrong_type(self, auth_service):
        token = auth_service.create_access_token(7, {"type": "refresh"})
        with pytest.raises(InvalidTokenError):
            auth_service.verify_access_token(token)

    def test_non_numeric_subject(self, auth_service):
        token = auth_service.create_access_token(7, {"sub": "ada"})
        with pytest.raises(InvalidTokenError):
            auth_service.user_id_from_token(token)
