"""
Shared FastAPI dependencies
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_bridge.common.events import EventDispatcher
from auth0_bridge.core.auth0.config import Auth0Config, get_auth0_config
from auth0_bridge.core.database import get_db
from auth0_bridge.services.auth0_login_service import Auth0LoginService
from auth0_bridge.services.user_reconciliation_service import UserReconciliationService


def get_event_dispatcher(request: Request) -> EventDispatcher:
    """The application's notification sink (created in main.create_app)."""
    return request.app.state.events


def get_auth0_login_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
    config: Auth0Config = Depends(get_auth0_config),
    events: EventDispatcher = Depends(get_event_dispatcher),
) -> Auth0LoginService:
    reconciler = UserReconciliationService(
        db,
        hooks=getattr(request.app.state, "reconcile_hooks", None),
    )
    return Auth0LoginService(db, config, reconciler=reconciler, events=events)
