"""Strava login routes.

The callback stores (or refreshes) the participant and returns a session
JWT for the Authorization header of later requests.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config import Settings
from ...db.repositories import UserRepository
from ...exceptions import ErrorCode, ProviderError, ValidationError
from ...integrations import AuthenticationError, IntegrationError, StravaOAuthFlow
from ...services import AuthService
from ..deps import get_app_settings, get_auth_service, get_oauth_flow, get_user_repository
from ..schemas import SessionResponse, StravaAuthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/auth/strava", response_model=StravaAuthResponse)
async def strava_authorize(oauth: StravaOAuthFlow = Depends(get_oauth_flow)):
    """Authorization URL for connecting a Strava account."""
    state = oauth.generate_state()
    return StravaAuthResponse(
        authorization_url=oauth.get_authorization_url(state),
        state=state,
    )


@router.get("/auth/strava/callback", response_model=SessionResponse)
async def strava_callback(
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    oauth: StravaOAuthFlow = Depends(get_oauth_flow),
    users: UserRepository = Depends(get_user_repository),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Exchange the authorization code, store the user and start a session."""
    if error:
        raise ValidationError(f"Strava authorization was denied: {error}", field="error")
    if not code:
        raise ValidationError("Missing authorization code", field="code")

    try:
        credentials = await oauth.exchange_code(code)
    except AuthenticationError as e:
        raise ProviderError(str(e), code=ErrorCode.PROVIDER_UNAUTHORIZED) from e
    except IntegrationError as e:
        raise ProviderError(str(e)) from e

    user = users.save_user(
        strava_id=credentials.user_id,
        firstname=credentials.firstname,
        lastname=credentials.lastname,
        access_token=credentials.access_token,
        refresh_token=credentials.refresh_token or "",
        token_expires_at=credentials.expires_at or 0,
        bailout_passes=settings.default_bailout_passes,
    )
    logger.info(f"User {user.id} ({user.name}) connected with Strava")

    return SessionResponse(
        access_token=auth_service.create_access_token(user.id),
        expires_in=auth_service.expires_in,
        user_id=user.id,
        name=user.name,
        profile_complete=user.profile_complete,
    )
