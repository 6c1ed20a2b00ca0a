"""
External integrations for the running challenge.

Strava is the only activity feed: OAuth login and activity listing.
"""

from .base import (
    AuthenticationError,
    IntegrationError,
    OAuthCredentials,
    RateLimitError,
)
from .strava import RateLimitUsage, StravaClient, StravaOAuthFlow

__all__ = [
    "AuthenticationError",
    "IntegrationError",
    "OAuthCredentials",
    "RateLimitError",
    "RateLimitUsage",
    "StravaClient",
    "StravaOAuthFlow",
]
