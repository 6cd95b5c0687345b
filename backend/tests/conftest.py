"""
Shared fixtures: environment defaults, in-memory User Store doubles and
factories for users and claims.
"""

import os
import uuid
from typing import Dict, List, Optional

# Settings() requires SECRET_KEY at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_DIR", "")

import pytest  # noqa: E402

from auth0_bridge.core.auth0.claims import ProviderClaims  # noqa: E402
from auth0_bridge.core.auth0.config import Auth0Config  # noqa: E402
from auth0_bridge.models.user import User, UserGroup  # noqa: E402


class InMemoryUserRepository:
    """Implements the UserRepository surface used by reconciliation."""

    def __init__(self, users: Optional[List[User]] = None):
        self.users: List[User] = list(users or [])
        self.saved: List[User] = []

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        return next((u for u in self.users if u.external_id == external_id), None)

    async def get_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        return next((u for u in self.users if (u.email or "").lower() == wanted), None)

    async def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users if u.username == username), None)

    async def username_exists(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    async def save(self, user: User) -> User:
        if user.id is None:
            user.id = str(uuid.uuid4())
        if not any(u is user for u in self.users):
            self.users.append(user)
        self.saved.append(user)
        return user

    async def attach_group(self, user: User, group: UserGroup) -> None:
        if group not in user.groups:
            user.groups.append(group)


class InMemoryUserGroupRepository:
    def __init__(self, groups: Optional[List[UserGroup]] = None):
        self.groups: Dict[int, UserGroup] = {g.id: g for g in (groups or [])}

    async def get(self, id: int) -> Optional[UserGroup]:
        return self.groups.get(id)


@pytest.fixture
def make_user():
    def _make_user(**overrides) -> User:
        data = {
            "id": str(uuid.uuid4()),
            "username": "alice",
            "email": "alice@x.com",
            "first_name": "Alice",
            "last_name": "Liddell",
            "external_id": None,
            "groups": [],
        }
        data.update(overrides)
        return User(**data)

    return _make_user


@pytest.fixture
def make_claims():
    def _make_claims(**overrides) -> ProviderClaims:
        data = {
            "subject": "auth0|abc123",
            "email": "alice@x.com",
            "name": "Alice Liddell",
            "nickname": "alice",
            "avatar_url": "https://cdn.example.com/alice.png",
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "id_token": "id-1",
            "raw_userinfo": {"sub": "auth0|abc123", "email": "alice@x.com"},
        }
        data.update(overrides)
        return ProviderClaims(**data)

    return _make_claims


@pytest.fixture
def auth0_config() -> Auth0Config:
    return Auth0Config(
        domain="t.auth0.com",
        client_id="abc",
        client_secret="s3cret",
    )
