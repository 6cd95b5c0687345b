"""
Repository layer
"""

from .base import BaseRepository
from .user import UserRepository
from .user_group import UserGroupRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "UserGroupRepository",
]
