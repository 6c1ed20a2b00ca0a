"""Repository layer over the challenge database."""

from .user_repository import UserRepository
from .progress_repository import ProgressRepository
from .activity_repository import ActivityRepository

__all__ = ["UserRepository", "ProgressRepository", "ActivityRepository"]
