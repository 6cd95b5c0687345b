"""
FastAPI Main Application
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Sequence

from fastapi import FastAPI
from loguru import logger
from sqlalchemy import text
from starlette.middleware.sessions import SessionMiddleware

from auth0_bridge.api import api_router
from auth0_bridge.common.events import EventDispatcher
from auth0_bridge.common.exceptions import register_exception_handlers
from auth0_bridge.common.logging import LoggingMiddleware, setup_logging
from auth0_bridge.core.auth0.config import get_auth0_config
from auth0_bridge.core.database import async_session_factory, close_db, engine, init_db
from auth0_bridge.core.settings import settings
from auth0_bridge.repositories.user_group import UserGroupRepository
from auth0_bridge.services.user_reconciliation_service import PostReconcileHook

setup_logging("DEBUG" if settings.debug else settings.log_level.upper(), settings.log_dir)


async def _check_db_connection():
    """Quickly check database connectivity on startup."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("select 1"))
        logger.info("   Database connection check: OK")
    except Exception as e:
        logger.opt(exception=True).error(f"   Database connection check failed: {e}")


async def _bootstrap_database():
    """Create tables and seed default groups (DATABASE_AUTO_CREATE only)."""
    await init_db()
    async with async_session_factory() as db:
        created = await UserGroupRepository(db).seed_defaults()
        await db.commit()
    logger.info(f"   Database bootstrap done ({created} group(s) seeded)")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application Lifecycle"""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   Debug: {settings.debug}")

    if not get_auth0_config().is_configured():
        logger.warning("   Auth0 is not configured: /auth0/login will fail until AUTH0_DOMAIN, "
                       "AUTH0_CLIENT_ID and AUTH0_CLIENT_SECRET are set")

    if settings.database_auto_create:
        await _bootstrap_database()

    await _check_db_connection()

    yield

    # Shutdown
    await app.state.events.drain()
    await close_db()
    logger.info("Application shutdown")


def create_app(
    events: Optional[EventDispatcher] = None,
    reconcile_hooks: Optional[Sequence[PostReconcileHook]] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        events: Notification sink shared by all requests; subscribe to AuthEvent values on it
        reconcile_hooks: Ordered callables run after a user is created or updated
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Auth0 authorization code login bridge",
        docs_url="/docs" if settings.debug or settings.environment == "development" else None,
        redoc_url="/redoc" if settings.debug or settings.environment == "development" else None,
        lifespan=lifespan,
    )
    app.state.events = events or EventDispatcher()
    app.state.reconcile_hooks = list(reconcile_hooks or [])

    # Exception handling
    register_exception_handlers(app)

    # Logging middleware
    app.add_middleware(LoggingMiddleware)

    # Signed cookie session holding the pending login state
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key or settings.secret_key,
        session_cookie=settings.session_cookie_name,
        same_site="lax",
        https_only=settings.cookie_secure_effective,
    )

    app.include_router(api_router)

    @app.get("/", tags=["Root"])
    async def root():
        """Root path, health check"""
        return {"status": "ok", "service": settings.app_name}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "auth0_bridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        proxy_headers=settings.trust_proxy_headers,
    )
