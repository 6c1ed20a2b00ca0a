"""Per-runner challenge routes: progress, bailouts, calendar, stats, profile."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ...db.repositories import UserRepository
from ...exceptions import ValidationError
from ...models import AgeProfile, User
from ...services import BailoutService, DashboardService, ProgressService
from ..deps import (
    get_bailout_service,
    get_dashboard_service,
    get_progress_service,
    get_user_repository,
)
from ..middleware.auth import get_current_user
from ..schemas import (
    BailoutResponse,
    ProfileRequest,
    ProgressResponse,
    RunResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_day(value: Optional[str]) -> Optional[date]:
    """ISO date from a query parameter; None passes through."""
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD", field="date")


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    """Re-evaluate the last 30 days from Strava and return them."""
    report = await service.refresh(user)
    return report.to_dict()


@router.post("/use-bailout", response_model=BailoutResponse)
async def use_bailout(
    date_param: Optional[str] = Query(None, alias="date"),
    user: User = Depends(get_current_user),
    service: BailoutService = Depends(get_bailout_service),
):
    """Spend a bailout pass on a day. A zero balance returns used=false."""
    outcome = service.redeem(user.id, parse_day(date_param))
    return outcome.to_dict()


@router.get("/calendar")
async def get_calendar(
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return await service.calendar(user)


@router.get("/stats")
async def get_stats(
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return await service.stats(user)


@router.get("/activities", response_model=List[RunResponse])
async def get_activities(
    user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Recent runs, newest first."""
    return await service.recent_activities(user)


@router.post("/profile", response_model=UserResponse)
async def save_profile(
    request: ProfileRequest,
    user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
):
    """Save the age-grading profile used by the dashboards."""
    updated = users.update_profile(
        user.id,
        AgeProfile(request.age, request.sex, request.baseline_mile_pace),
    )
    logger.info(f"User {user.id} completed their profile")
    return updated.to_dict()
