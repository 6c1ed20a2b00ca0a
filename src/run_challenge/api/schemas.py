"""Request and response models for the HTTP API."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class StravaAuthResponse(BaseModel):
    """Strava authorization URL the client should redirect to."""
    authorization_url: str
    state: str


class SessionResponse(BaseModel):
    """Session issued after a successful Strava login."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    name: str
    profile_complete: bool


class UserResponse(BaseModel):
    id: int
    strava_id: str
    firstname: str
    lastname: str
    name: str
    bailout_passes: int
    elimination_date: Optional[str] = None
    elimination_reason: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[str] = None
    baseline_mile_pace: Optional[float] = None
    profile_complete: bool


class ProfileRequest(BaseModel):
    """Age-grading profile entered on first login."""
    age: int = Field(..., gt=0, lt=120)
    sex: Literal["M", "F"]
    baseline_mile_pace: float = Field(..., gt=0, description="Minutes per mile")


class RunResponse(BaseModel):
    id: int
    name: str
    type: str
    distance_miles: float
    moving_time: int
    elapsed_time: int
    start_date: str
    total_elevation_gain: float


class DayResponse(BaseModel):
    date: str
    required_distance: float
    total_distance: float
    goal_met: bool
    shortfall: float
    status: str
    runs: List[RunResponse] = []


class ProgressResponse(BaseModel):
    """Evaluated progress window and resulting standing."""
    user_id: int
    days: List[DayResponse]
    consecutive_misses: int
    status: str
    reason: Optional[str] = None
    bailout_passes: int


class BailoutResponse(BaseModel):
    used: bool
    date: str
    passes_remaining: int
    message: str


class HealthResponse(BaseModel):
    status: str
    database: str
