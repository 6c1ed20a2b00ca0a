"""Dependency injection for API routes.

The database is opened by the application lifespan and kept on
``app.state``; everything else is built per request on top of it.
"""

from typing import Optional

from fastapi import Depends, Request

from ..config import Settings
from ..db.database import ChallengeDatabase
from ..db.repositories import ActivityRepository, ProgressRepository, UserRepository
from ..exceptions import ProviderNotConfiguredError
from ..integrations import StravaOAuthFlow
from ..services import (
    ActivityFeed,
    AuthService,
    BailoutService,
    DashboardService,
    ProgressService,
)


def get_database(request: Request) -> ChallengeDatabase:
    """The challenge database opened at startup."""
    return request.app.state.db


def get_user_repository(db: ChallengeDatabase = Depends(get_database)) -> UserRepository:
    return UserRepository(db)


def get_progress_repository(db: ChallengeDatabase = Depends(get_database)) -> ProgressRepository:
    return ProgressRepository(db)


def get_activity_repository(db: ChallengeDatabase = Depends(get_database)) -> ActivityRepository:
    return ActivityRepository(db)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_auth_service(settings: Settings = Depends(get_app_settings)) -> AuthService:
    """Session token service signed with the configured secret."""
    return AuthService(settings)


def build_oauth_flow(settings: Settings) -> Optional[StravaOAuthFlow]:
    """Strava OAuth flow, or None when client credentials are not set."""
    if not settings.strava_client_id or not settings.strava_client_secret:
        return None
    return StravaOAuthFlow(
        client_id=settings.strava_client_id,
        client_secret=settings.strava_client_secret,
        redirect_uri=settings.strava_redirect_uri,
        scope=settings.strava_scope,
    )


def get_oauth_flow(settings: Settings = Depends(get_app_settings)) -> StravaOAuthFlow:
    """Strava OAuth flow for the login routes.

    Raises:
        ProviderNotConfiguredError: If Strava credentials are not configured
    """
    oauth = build_oauth_flow(settings)
    if oauth is None:
        raise ProviderNotConfiguredError()
    return oauth


def get_activity_feed(
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
) -> ActivityFeed:
    return ActivityFeed(users, oauth=build_oauth_flow(settings))


def get_progress_service(
    users: UserRepository = Depends(get_user_repository),
    progress: ProgressRepository = Depends(get_progress_repository),
    activities: ActivityRepository = Depends(get_activity_repository),
    feed: ActivityFeed = Depends(get_activity_feed),
    settings: Settings = Depends(get_app_settings),
) -> ProgressService:
    return ProgressService(
        users,
        progress,
        activities,
        feed,
        window_size=settings.progress_window_days,
        miss_lookback=settings.miss_lookback,
        page_size=settings.feed_page_size,
    )


def get_dashboard_service(
    users: UserRepository = Depends(get_user_repository),
    progress: ProgressRepository = Depends(get_progress_repository),
    activities: ActivityRepository = Depends(get_activity_repository),
    feed: ActivityFeed = Depends(get_activity_feed),
    settings: Settings = Depends(get_app_settings),
) -> DashboardService:
    return DashboardService(
        users,
        progress,
        activities,
        feed,
        challenge_start=settings.challenge_start_date,
        window_size=settings.progress_window_days,
        miss_lookback=settings.miss_lookback,
        page_size=settings.feed_page_size,
    )


def get_bailout_service(
    users: UserRepository = Depends(get_user_repository),
    progress: ProgressRepository = Depends(get_progress_repository),
) -> BailoutService:
    return BailoutService(users, progress)
