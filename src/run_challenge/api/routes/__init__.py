"""API route modules."""

from . import auth, challenge, dashboard

__all__ = ["auth", "challenge", "dashboard"]
