"""Database module for challenge users, activities and daily progress."""

from .database import ChallengeDatabase
from .connection_pool import SQLiteConnectionPool

__all__ = ["ChallengeDatabase", "SQLiteConnectionPool"]
