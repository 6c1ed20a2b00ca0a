"""Authentication dependencies for FastAPI routes.

Protected routes expect the session JWT issued by the Strava callback in
an ``Authorization: Bearer`` header.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...db.repositories import UserRepository
from ...models import User
from ...services.auth_service import AuthService, InvalidTokenError, TokenExpiredError
from ..deps import get_auth_service, get_user_repository


# Security scheme for Bearer token authentication
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
    users: UserRepository = Depends(get_user_repository),
) -> User:
    """FastAPI dependency resolving the bearer token to a stored user.

    Raises:
        HTTPException (401): If no token is provided, the token is invalid,
            or its user no longer exists.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        user_id = auth_service.user_id_from_token(credentials.credentials)
    except TokenExpiredError:
        raise _unauthorized("Token has expired")
    except InvalidTokenError as e:
        raise _unauthorized(str(e))

    user = users.get_by_id(user_id)
    if user is None:
        raise _unauthorized("User no longer exists")
    return user
