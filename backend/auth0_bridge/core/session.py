"""
Session-backed login state and the authenticated session cookie.

Pending login data lives in the signed Starlette session (`request.session`):

- `url.intended`: generic "return here after login" target set by the host app
- `auth0_intended`: target chosen at /auth0/login, consumed at the callback
- `auth0_state`: CSRF state sent to Auth0 (not stored in stateless mode)
- `auth0_flow_state`: last LoginState reached by this browser
- `auth0_user_id`: local user id once the callback succeeded
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, MutableMapping, Optional

from fastapi import Response

from auth0_bridge.core.settings import settings


class LoginState(str, Enum):
    ANONYMOUS = "anonymous"
    AWAITING_PROVIDER_REDIRECT = "awaiting_provider_redirect"
    AWAITING_CALLBACK = "awaiting_callback"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class AuthSessionStore:
    """Typed access to the login keys of a session mapping."""

    GENERIC_INTENDED_KEY = "url.intended"
    INTENDED_KEY = "auth0_intended"
    STATE_KEY = "auth0_state"
    FLOW_STATE_KEY = "auth0_flow_state"
    USER_KEY = "auth0_user_id"

    def __init__(self, session: MutableMapping[str, Any]):
        self.session = session

    # Redirect targets

    def pull_generic_intended(self) -> Optional[str]:
        return self.session.pop(self.GENERIC_INTENDED_KEY, None) or None

    def get_intended_redirect(self) -> Optional[str]:
        return self.session.get(self.INTENDED_KEY) or None

    def set_intended_redirect(self, url: str) -> None:
        self.session[self.INTENDED_KEY] = url

    def pull_intended_redirect(self) -> Optional[str]:
        """Pop the login target, falling back to a stray generic target; both keys are consumed."""
        intended = self.session.pop(self.INTENDED_KEY, None)
        generic = self.session.pop(self.GENERIC_INTENDED_KEY, None)
        return intended or generic or None

    # CSRF state

    def set_pending_state(self, state: str) -> None:
        self.session[self.STATE_KEY] = state

    def pull_pending_state(self) -> Optional[str]:
        return self.session.pop(self.STATE_KEY, None) or None

    # Flow state

    def get_flow_state(self) -> LoginState:
        value = self.session.get(self.FLOW_STATE_KEY)
        try:
            return LoginState(value)
        except ValueError:
            return LoginState.ANONYMOUS

    def set_flow_state(self, state: LoginState) -> None:
        self.session[self.FLOW_STATE_KEY] = state.value

    # Authenticated user

    def set_authenticated_user(self, user_id: str) -> None:
        self.session[self.USER_KEY] = user_id

    def get_authenticated_user(self) -> Optional[str]:
        return self.session.get(self.USER_KEY) or None

    def clear(self) -> None:
        self.session.clear()


def _cookie_kwargs() -> dict:
    kwargs: dict = {
        "httponly": True,
        "samesite": settings.cookie_samesite,
        "secure": settings.cookie_secure_effective,
        "path": "/",
    }
    if settings.cookie_domain:
        kwargs["domain"] = settings.cookie_domain
    return kwargs


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the persistent ("remember me") login cookie."""
    expires = datetime.now(timezone.utc) + timedelta(days=settings.remember_days)
    response.set_cookie(key=settings.cookie_name, value=token, expires=expires, **_cookie_kwargs())


def clear_session_cookie(response: Response) -> None:
    kwargs = _cookie_kwargs()
    response.delete_cookie(
        key=settings.cookie_name,
        path=kwargs["path"],
        domain=kwargs.get("domain"),
        secure=kwargs["secure"],
        httponly=kwargs["httponly"],
        samesite=kwargs["samesite"],
    )
