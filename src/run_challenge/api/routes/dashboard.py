"""Dashboard and leaderboard routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...models import User
from ...services import DashboardService
from ..deps import get_dashboard_service
from ..middleware.auth import get_current_user

router = APIRouter()


@router.get("/dashboard")
async def personal_dashboard(
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """The signed-in runner's dashboard. Needs a completed profile (409 otherwise)."""
    return await service.personal(user)


@router.get("/family")
async def family_dashboard(
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """Family overview with cumulative and improvement charts."""
    return await service.family()


@router.get("/leaderboard")
async def leaderboard(
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """Public standings and current champion."""
    return service.leaderboard()
