"""
Data models
"""

from .base import TimestampMixin
from .user import SENTINEL_FIRST_NAME, User, UserGroup, user_group_membership

__all__ = [
    "TimestampMixin",
    "User",
    "UserGroup",
    "user_group_membership",
    "SENTINEL_FIRST_NAME",
]
