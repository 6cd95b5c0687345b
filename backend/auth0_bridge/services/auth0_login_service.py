"""
Auth0 login flow

State machine per browser session:
    anonymous -> awaiting_provider_redirect -> awaiting_callback -> authenticated
with `failed` as the terminal state of any attempt that raises.

The service owns CSRF state, redirect-target selection and sanitization; it
never builds HTTP responses (see api/v1/auth0.py).
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_bridge.common.events import AuthEvent, EventDispatcher
from auth0_bridge.common.exceptions import (
    ConfigurationError,
    MissingCodeError,
    MissingStateError,
    UpstreamDeniedError,
)
from auth0_bridge.core.auth0.client import Auth0Client
from auth0_bridge.core.auth0.config import Auth0Config
from auth0_bridge.core.auth0.urls import (
    RequestOrigin,
    build_logout_url,
    resolve_callback_url,
    sanitize_redirect_path,
)
from auth0_bridge.core.security import create_session_token, generate_token
from auth0_bridge.core.session import AuthSessionStore, LoginState
from auth0_bridge.models.base import utc_now
from auth0_bridge.models.user import User
from auth0_bridge.services.base import BaseService
from auth0_bridge.services.user_reconciliation_service import (
    ReconciliationPolicy,
    UserReconciliationService,
)

LOG_PREFIX = "[Auth0Login]"


@dataclass
class CallbackResult:
    user: User
    created: bool
    redirect_url: str
    session_token: str


class Auth0LoginService(BaseService):
    """Begin-login, callback and logout for one configuration snapshot."""

    def __init__(
        self,
        db: AsyncSession,
        config: Auth0Config,
        *,
        client: Optional[Auth0Client] = None,
        reconciler: Optional[UserReconciliationService] = None,
        events: Optional[EventDispatcher] = None,
    ):
        super().__init__(db)
        self.config = config
        self.events = events or EventDispatcher()
        self.client = client or Auth0Client(config)
        self.reconciler = reconciler or UserReconciliationService(db)

    # ==================== Begin login ====================

    async def begin_login(
        self,
        store: AuthSessionStore,
        origin: RequestOrigin,
        redirect: Optional[str] = None,
    ) -> str:
        """
        Remember where to return after login and build the Auth0 /authorize URL.

        Target precedence: generic intended URL left by the host app, then the
        `redirect` query parameter, then a target stored by an earlier attempt,
        else "/".

        Raises:
            ConfigurationError: Auth0 is not configured
        """
        if not self.config.is_configured():
            self._transition(store, LoginState.FAILED)
            raise ConfigurationError("Auth0 is not configured. Please configure domain, client ID and client secret.")

        self._transition(store, LoginState.AWAITING_PROVIDER_REDIRECT)

        intended = store.pull_generic_intended() or redirect or store.get_intended_redirect() or "/"
        store.set_intended_redirect(intended)

        state = generate_token(32)
        if self.config.stateless_mode:
            logger.warning(f"{LOG_PREFIX} Stateless mode enabled: callback state will not be verified")
        else:
            store.set_pending_state(state)

        redirect_uri = resolve_callback_url(self.config.callback_url, origin)
        try:
            authorization_url = await self.client.build_authorization_url(redirect_uri=redirect_uri, state=state)
        except Exception:
            self._transition(store, LoginState.FAILED)
            raise

        self._transition(store, LoginState.AWAITING_CALLBACK)
        logger.info(f"{LOG_PREFIX} Redirecting to Auth0, intended target {intended}")
        return authorization_url

    # ==================== Callback ====================

    async def handle_callback(
        self,
        store: AuthSessionStore,
        origin: RequestOrigin,
        *,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> CallbackResult:
        """
        Validate the callback, exchange the code, resolve the local user and
        compute the same-origin redirect.

        Raises:
            ConfigurationError, UpstreamDeniedError, MissingCodeError,
            MissingStateError, InvalidStateError, UpstreamClientError,
            UpstreamError, ProvisioningDisabledError
        """
        try:
            return await self._handle_callback(
                store,
                origin,
                code=code,
                state=state,
                error=error,
                error_description=error_description,
                ip_address=ip_address,
            )
        except Exception:
            self._transition(store, LoginState.FAILED)
            await self.rollback()
            raise

    async def _handle_callback(
        self,
        store: AuthSessionStore,
        origin: RequestOrigin,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str],
        error_description: Optional[str],
        ip_address: Optional[str],
    ) -> CallbackResult:
        self.client.ensure_configured()

        if error:
            logger.warning(f"{LOG_PREFIX} Auth0 returned error: {error} - {error_description}")
            raise UpstreamDeniedError(error, error_description)
        if not code:
            raise MissingCodeError()
        if not state:
            logger.warning(f"{LOG_PREFIX} Callback without state parameter, possible CSRF attempt")
            raise MissingStateError()

        expected_state = store.pull_pending_state()
        redirect_uri = resolve_callback_url(self.config.callback_url, origin)
        claims = await self.client.exchange_code(
            code=code,
            state=state,
            redirect_uri=redirect_uri,
            expected_state=expected_state,
        )

        result = await self.reconciler.resolve(
            claims,
            ReconciliationPolicy.from_config(self.config),
            ip_address=ip_address,
        )
        user = result.user
        user.last_login_at = utc_now()
        await self.commit()

        session_token = create_session_token(user.id)
        store.set_authenticated_user(user.id)
        self._transition(store, LoginState.AUTHENTICATED)

        # Only committed reconciliations are announced
        for event, payload in result.events:
            self.events.fire(event, **payload)
        self.events.fire(AuthEvent.USER_AUTHENTICATED, user=user, claims=claims)
        self.events.fire(AuthEvent.LOGIN, user=user, remember=True)

        path = sanitize_redirect_path(store.pull_intended_redirect(), origin)
        redirect_url = f"{origin.base_url}{path}"
        logger.info(f"{LOG_PREFIX} User {user.id} authenticated (created={result.created}), redirecting to {path}")

        return CallbackResult(
            user=user,
            created=result.created,
            redirect_url=redirect_url,
            session_token=session_token,
        )

    # ==================== Logout ====================

    def logout(self, store: AuthSessionStore, origin: RequestOrigin) -> str:
        """Clear the local session; returns the Auth0 logout URL, or "/" without a domain."""
        store.clear()

        if not self.config.domain:
            return "/"

        return_to = self.config.logout_url or f"{origin.base_url}/"
        return build_logout_url(self.config.domain, self.config.client_id, return_to)

    def _transition(self, store: AuthSessionStore, new_state: LoginState) -> None:
        previous = store.get_flow_state()
        store.set_flow_state(new_state)
        logger.debug(f"{LOG_PREFIX} Flow state {previous.value} -> {new_state.value}")
