"""
Auth0 login endpoints.

- GET  /auth0/login    - start the authorization code flow
- GET  /auth0/callback - Auth0 redirect target
- GET  /auth0/logout   - clear the local session and sign out of Auth0
- POST /auth0/webhook  - republish an Auth0 webhook to event subscribers

Login and callback failures are rendered as a diagnostic HTML page outside
production; in production they go to the registered exception handlers.
"""

import html
import traceback
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger

from auth0_bridge.common.dependencies import get_auth0_login_service, get_event_dispatcher
from auth0_bridge.common.events import AuthEvent, EventDispatcher
from auth0_bridge.core.auth0.urls import RequestOrigin, get_client_ip
from auth0_bridge.core.session import AuthSessionStore, clear_session_cookie, set_session_cookie
from auth0_bridge.core.settings import settings
from auth0_bridge.services.auth0_login_service import Auth0LoginService

LOG_PREFIX = "[Auth0API]"
router = APIRouter(prefix="/auth0", tags=["Auth0"])


@router.get("/login")
async def auth0_login(
    request: Request,
    redirect: Optional[str] = Query(None, description="Where to return after a successful login"),
    service: Auth0LoginService = Depends(get_auth0_login_service),
):
    """Redirect the browser to the Auth0 authorization page."""
    try:
        authorization_url = await service.begin_login(
            AuthSessionStore(request.session),
            _get_origin(request),
            redirect=redirect,
        )
    except Exception as e:
        if settings.is_production:
            raise
        return _diagnostic_response(e)

    return RedirectResponse(url=authorization_url, status_code=302)


@router.get("/callback")
async def auth0_callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code"),
    state: Optional[str] = Query(None, description="State issued at login"),
    error: Optional[str] = Query(None, description="Error reported by Auth0"),
    error_description: Optional[str] = Query(None, description="Error description"),
    service: Auth0LoginService = Depends(get_auth0_login_service),
):
    """Exchange the code, sign the user in and redirect to the remembered target."""
    try:
        result = await service.handle_callback(
            AuthSessionStore(request.session),
            _get_origin(request),
            code=code,
            state=state,
            error=error,
            error_description=error_description,
            ip_address=get_client_ip(request, settings.trust_proxy_headers),
        )
    except Exception as e:
        if settings.is_production:
            raise
        return _diagnostic_response(e)

    response = RedirectResponse(url=result.redirect_url, status_code=302)
    set_session_cookie(response, result.session_token)
    return response


@router.get("/logout")
async def auth0_logout(
    request: Request,
    service: Auth0LoginService = Depends(get_auth0_login_service),
) -> RedirectResponse:
    """Sign out locally, then at Auth0 when a domain is configured."""
    logout_url = service.logout(AuthSessionStore(request.session), _get_origin(request))
    response = RedirectResponse(url=logout_url, status_code=302)
    clear_session_cookie(response)
    logger.info(f"{LOG_PREFIX} Logged out, redirecting to {logout_url}")
    return response


@router.post("/webhook")
async def auth0_webhook(
    request: Request,
    events: EventDispatcher = Depends(get_event_dispatcher),
) -> dict:
    """Accept any body and hand it to webhook subscribers."""
    payload = await _read_payload(request)
    events.fire(AuthEvent.WEBHOOK_RECEIVED, payload=payload)
    return {"success": True}


# ==================== Helpers ====================


def _get_origin(request: Request) -> RequestOrigin:
    return RequestOrigin.from_request(request, settings.trust_proxy_headers)


async def _read_payload(request: Request) -> Any:
    """JSON body, else form fields, else an empty dict."""
    body = await request.body()
    if not body:
        return {}
    try:
        return await request.json()
    except ValueError:
        form = await request.form()
        return dict(form)


def _diagnostic_response(exc: Exception) -> HTMLResponse:
    """HTTP 500 page with the error and its traceback (non-production only)."""
    logger.opt(exception=exc).error(f"{LOG_PREFIX} Auth0 flow failed: {exc}")
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    content = (
        "<!DOCTYPE html><html><head><title>Auth0 Error</title></head><body>"
        f"<h1>Auth0 Error</h1><p>{html.escape(str(exc))}</p>"
        f"<h2>Trace</h2><pre>{html.escape(trace)}</pre>"
        "</body></html>"
    )
    return HTMLResponse(content=content, status_code=500)
