"""
Local user, user group and membership tables
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auth0_bridge.core.database import Base
from auth0_bridge.models.base import TimestampMixin

SENTINEL_FIRST_NAME = "User"


def _generate_str_id() -> str:
    return str(uuid.uuid4())


user_group_membership = Table(
    "auth0_user_group_membership",
    Base.metadata,
    Column("user_id", String(255), ForeignKey("auth0_user.id", ondelete="CASCADE"), primary_key=True),
    Column("user_group_id", Integer, ForeignKey("auth0_user_group.id", ondelete="CASCADE"), primary_key=True),
)


class UserGroup(Base, TimestampMixin):
    """Group a user can belong to; one of them may be the user's primary group."""

    __tablename__ = "auth0_user_group"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    users: Mapped[List["User"]] = relationship(
        "User",
        secondary=user_group_membership,
        back_populates="groups",
    )


class User(Base, TimestampMixin):
    """
    Local identity record.

    `external_id` holds the Auth0 subject (`sub`) once the account is linked;
    tokens are stored opaque and never trusted for authorization.
    """

    __tablename__ = "auth0_user"

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        default=_generate_str_id,
    )
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Auth0 linkage
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True, index=True)
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    id_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    user_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    user_info_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    primary_group_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("auth0_user_group.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_ip: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_ip: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    groups: Mapped[List[UserGroup]] = relationship(
        UserGroup,
        secondary=user_group_membership,
        back_populates="users",
    )

    @property
    def is_activated(self) -> bool:
        return self.activated_at is not None
