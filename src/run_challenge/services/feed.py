"""Activity feed access for a stored user.

Wraps the Strava client: refreshes an expired access token and saves the
new tokens before fetching, and turns integration failures into
ProviderError for the API layer.
"""

import logging
from typing import Callable, List, Optional

from ..db.repositories import UserRepository
from ..exceptions import ErrorCode, ProviderError
from ..integrations import (
    AuthenticationError,
    IntegrationError,
    OAuthCredentials,
    RateLimitError,
    StravaClient,
    StravaOAuthFlow,
)
from ..models import Activity, User

logger = logging.getLogger(__name__)


def provider_error_from(error: IntegrationError) -> ProviderError:
    """Map an integration failure onto the service error hierarchy."""
    if isinstance(error, AuthenticationError):
        return ProviderError(
            f"Strava authorization failed: {error}",
            code=ErrorCode.PROVIDER_UNAUTHORIZED,
        )
    if isinstance(error, RateLimitError):
        return ProviderError(
            "Strava rate limit exceeded",
            code=ErrorCode.PROVIDER_RATE_LIMITED,
            status_code=503,
            details={"retry_after": error.retry_after},
        )
    return ProviderError(str(error), details={"provider_code": error.code} if error.code else None)


class ActivityFeed:
    """Fetches a user's recent activities from Strava."""

    def __init__(
        self,
        users: UserRepository,
        oauth: Optional[StravaOAuthFlow] = None,
        client_factory: Callable[[OAuthCredentials], StravaClient] = StravaClient,
    ):
        self.users = users
        self.oauth = oauth
        self.client_factory = client_factory

    async def _credentials_for(self, user: User) -> OAuthCredentials:
        if not user.access_token:
            raise ProviderError(
                "User has no Strava access token",
                code=ErrorCode.PROVIDER_UNAUTHORIZED,
            )

        credentials = OAuthCredentials(
            provider="strava",
            access_token=user.access_token,
            refresh_token=user.refresh_token,
            expires_at=user.token_expires_at,
            user_id=user.strava_id,
            firstname=user.firstname,
            lastname=user.lastname,
        )
        if not credentials.needs_refresh or self.oauth is None:
            return credentials

        refreshed = await self.oauth.refresh_token(credentials)
        self.users.update_tokens(
            user.id,
            refreshed.access_token,
            refreshed.refresh_token,
            refreshed.expires_at,
        )
        logger.info(f"Refreshed Strava token for user {user.id}")
        return refreshed

    async def fetch(self, user: User, limit: int = 200) -> List[Activity]:
        """
        Most recent activities for ``user``, distance in miles.

        Raises:
            ProviderError: If the token cannot be refreshed, Strava rejects
                the request, or the response is not an activity list
        """
        try:
            credentials = await self._credentials_for(user)
            async with self.client_factory(credentials) as client:
                return await client.get_activities(limit=limit)
        except IntegrationError as e:
            logger.warning(f"Activity feed failed for user {user.id}: {e}")
            raise provider_error_from(e) from e
