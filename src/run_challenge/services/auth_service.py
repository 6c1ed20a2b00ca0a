"""Session tokens for challenge participants.

After the Strava callback the API issues a signed JWT whose subject is the
local user id. Protected routes read it back from the Authorization header.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ..config import Settings, get_settings

ACCESS_TOKEN_TYPE = "access"


class AuthServiceError(Exception):
    """Base exception for auth service errors."""


class TokenExpiredError(AuthServiceError):
    pass


class InvalidTokenError(AuthServiceError):
    """Bad signature, malformed token, wrong type or unusable subject."""


class AuthService:
    """Creates and verifies session JWTs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)

    @property
    def expires_in(self) -> int:
        """Lifetime of an access token in seconds."""
        return int(self.lifetime.total_seconds())

    def create_access_token(self, user_id: int, additional_claims: dict[str, Any] | None = None) -> str:
        """Sign a token for ``user_id``; extra claims override the defaults."""
        issued = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "type": ACCESS_TOKEN_TYPE,
            "iat": issued,
            "exp": issued + self.lifetime,
            **(additional_claims or {}),
        }
        return jwt.encode(claims, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Decoded claims of a valid access token.

        Raises:
            TokenExpiredError: ``exp`` is in the past.
            InvalidTokenError: Anything else wrong with the token.
        """
        try:
            claims = jwt.decode(token, self.settings.jwt_secret_key, algorithms=[self.settings.jwt_algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        token_type = claims.get("type")
        if token_type != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError(f"Expected an access token, got {token_type!r}")
        return claims

    def user_id_from_token(self, token: str) -> int:
        subject = self.verify_access_token(token).get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise InvalidTokenError("Token subject is not a user id")
        return int(subject)
