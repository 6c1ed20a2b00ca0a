"""API middleware and auth dependencies."""

from .auth import get_current_user, security

__all__ = ["get_current_user", "security"]
