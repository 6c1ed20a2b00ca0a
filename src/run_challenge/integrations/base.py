"""
Shared types for activity-feed integrations: the error hierarchy raised by
provider clients and the OAuth token bundle they authenticate with.
"""

import time
from dataclasses import dataclass, replace
from typing import Optional


# Tokens this close to expiry are treated as already expired
EXPIRY_MARGIN_SECONDS = 300


class IntegrationError(Exception):
    """A provider request failed; ``code`` is a short machine-readable reason."""

    def __init__(self, message: str, provider: str = "", code: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
        self.code = code


class AuthenticationError(IntegrationError):
    """The provider rejected our credentials."""


class RateLimitError(IntegrationError):
    """The provider is throttling us; ``retry_after`` is in seconds when known."""

    def __init__(self, message: str, provider: str, retry_after: Optional[int] = None):
        super().__init__(message, provider, code="rate_limit")
        self.retry_after = retry_after


@dataclass
class OAuthCredentials:
    """
    Tokens for one athlete plus the name the provider reported.

    ``expires_at`` is epoch seconds, the form Strava returns and the users
    table stores.
    """
    provider: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    user_id: Optional[str] = None
    firstname: str = ""
    lastname: str = ""

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() + EXPIRY_MARGIN_SECONDS >= self.expires_at

    @property
    def needs_refresh(self) -> bool:
        return self.refresh_token is not None and self.is_expired

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def with_tokens(
        self,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[int],
    ) -> "OAuthCredentials":
        """Copy with new tokens; a missing refresh token keeps the old one."""
        return replace(
            self,
            access_token=access_token,
            refresh_token=refresh_token or self.refresh_token,
            expires_at=expires_at,
        )
