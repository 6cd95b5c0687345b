"""
User reconciliation - maps Auth0 claims onto a local user

Strategy (first match wins):
1. User already linked to the Auth0 subject
2. User with the same email (links the account)
3. Create a new user when auto-creation is allowed

Nothing is published from here. The `user_created` / `user_updated`
notifications are returned on the result and fired by the caller once the
transaction has committed.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_bridge.common.events import AuthEvent
from auth0_bridge.common.exceptions import ProvisioningDisabledError
from auth0_bridge.core.auth0.claims import ProviderClaims, derive_name
from auth0_bridge.core.auth0.config import Auth0Config
from auth0_bridge.core.security import generate_unusable_password_hash
from auth0_bridge.models.base import utc_now
from auth0_bridge.models.user import SENTINEL_FIRST_NAME, User, UserGroup
from auth0_bridge.repositories.user import UserRepository
from auth0_bridge.repositories.user_group import UserGroupRepository
from auth0_bridge.services.base import BaseService

LOG_PREFIX = "[UserReconciliation]"

PostReconcileHook = Callable[[User, ProviderClaims, bool], Union[None, Awaitable[None]]]
PendingEvent = Tuple[AuthEvent, Dict[str, Any]]


@dataclass(frozen=True)
class ReconciliationPolicy:
    auto_create_users: bool = True
    sync_user_data: bool = True
    default_user_group_id: Optional[int] = None

    @classmethod
    def from_config(cls, config: Auth0Config) -> "ReconciliationPolicy":
        return cls(
            auto_create_users=config.auto_create_users,
            sync_user_data=config.sync_user_data,
            default_user_group_id=config.default_user_group_id,
        )


@dataclass
class ReconciliationResult:
    user: User
    created: bool
    # Notifications to publish after commit, in order
    events: List[PendingEvent] = field(default_factory=list)


class UserReconciliationService(BaseService):
    """Finds, links, updates or creates the local user for a set of claims."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        user_repo: Optional[UserRepository] = None,
        group_repo: Optional[UserGroupRepository] = None,
        hooks: Optional[Sequence[PostReconcileHook]] = None,
    ):
        super().__init__(db)
        self.user_repo = user_repo or UserRepository(db)
        self.group_repo = group_repo or UserGroupRepository(db)
        self.hooks: List[PostReconcileHook] = list(hooks or [])

    def add_hook(self, hook: PostReconcileHook) -> None:
        self.hooks.append(hook)

    async def resolve(
        self,
        claims: ProviderClaims,
        policy: ReconciliationPolicy,
        ip_address: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Resolve the local user for `claims`.

        Hooks run before the result is returned; a failing hook fails the
        resolution and no notification is handed back.

        Raises:
            ProvisioningDisabledError: nothing matched and auto-creation is off
        """
        # 1. Already linked
        user = await self.user_repo.get_by_external_id(claims.subject)
        if user:
            logger.info(f"{LOG_PREFIX} Found user {user.id} linked to {claims.subject}")
            events: List[PendingEvent] = []
            if policy.sync_user_data:
                await self.update_user(user, claims, policy, ip_address)
                events.append((AuthEvent.USER_UPDATED, {"user": user, "claims": claims}))
            return await self._finish(user, claims, created=False, events=events)

        # 2. Link by email
        user = await self.user_repo.get_by_email(claims.email)
        if user:
            logger.info(f"{LOG_PREFIX} Linking user {user.id} to {claims.subject} by email")
            await self.update_user(user, claims, policy, ip_address)
            return await self._finish(
                user,
                claims,
                created=False,
                events=[(AuthEvent.USER_UPDATED, {"user": user, "claims": claims})],
            )

        # 3. Create
        if not policy.auto_create_users:
            logger.warning(f"{LOG_PREFIX} No local user for {claims.subject} and auto-creation is disabled")
            raise ProvisioningDisabledError()

        user = await self.create_user(claims, policy, ip_address)
        return await self._finish(
            user,
            claims,
            created=True,
            events=[(AuthEvent.USER_CREATED, {"user": user, "claims": claims})],
        )

    async def create_user(
        self,
        claims: ProviderClaims,
        policy: ReconciliationPolicy,
        ip_address: Optional[str] = None,
    ) -> User:
        first_name, last_name = derive_name(claims)
        now = utc_now()

        user = User(
            username=await self.generate_username(claims),
            email=claims.email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=generate_unusable_password_hash(),
            external_id=claims.subject,
            access_token=claims.access_token,
            refresh_token=claims.refresh_token,
            id_token=claims.id_token,
            avatar_url=claims.avatar_url,
            user_info=claims.raw_userinfo or None,
            user_info_updated_at=now if claims.raw_userinfo else None,
            activated_at=now,
            created_ip=ip_address,
            last_ip=ip_address,
            groups=[],
        )

        group = await self._default_group(policy)
        if group:
            user.primary_group_id = group.id

        await self.user_repo.save(user)
        if group:
            await self.user_repo.attach_group(user, group)

        logger.info(f"{LOG_PREFIX} Created user {user.id} ({user.username}) for {claims.subject}")
        return user

    async def update_user(
        self,
        user: User,
        claims: ProviderClaims,
        policy: ReconciliationPolicy,
        ip_address: Optional[str] = None,
    ) -> User:
        now = utc_now()

        user.external_id = claims.subject
        user.access_token = claims.access_token
        user.refresh_token = claims.refresh_token
        user.id_token = claims.id_token
        if ip_address:
            user.last_ip = ip_address
        if claims.raw_userinfo:
            user.user_info = claims.raw_userinfo
            user.user_info_updated_at = now

        if policy.sync_user_data:
            if not user.avatar_url and claims.avatar_url:
                user.avatar_url = claims.avatar_url

            first_is_placeholder = not user.first_name or user.first_name == SENTINEL_FIRST_NAME
            if first_is_placeholder or not user.last_name:
                first_name, last_name = derive_name(claims, default_first_name="")
                if first_name and first_is_placeholder:
                    user.first_name = first_name
                if last_name and not user.last_name:
                    user.last_name = last_name

        if not user.is_activated:
            user.activated_at = now

        await self.user_repo.save(user)

        logger.info(f"{LOG_PREFIX} Updated user {user.id} from Auth0 profile")
        return user

    async def generate_username(self, claims: ProviderClaims) -> str:
        """Email local part plus the first free numeric suffix: alice, alice1, alice2, ..."""
        base_username = claims.email_local_part or "user"
        username = base_username
        counter = 1
        while await self.user_repo.username_exists(username):
            username = f"{base_username}{counter}"
            counter += 1
        return username

    async def _default_group(self, policy: ReconciliationPolicy) -> Optional[UserGroup]:
        if policy.default_user_group_id is None:
            return None
        group = await self.group_repo.get(policy.default_user_group_id)
        if not group:
            logger.warning(f"{LOG_PREFIX} Default user group {policy.default_user_group_id} does not exist")
        return group

    async def _finish(
        self,
        user: User,
        claims: ProviderClaims,
        created: bool,
        events: List[PendingEvent],
    ) -> ReconciliationResult:
        for hook in self.hooks:
            result = hook(user, claims, created)
            if inspect.isawaitable(result):
                await result
        return ReconciliationResult(user=user, created=created, events=events)
