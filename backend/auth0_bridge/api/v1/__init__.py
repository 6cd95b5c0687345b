"""API v1 route aggregation."""
from fastapi import APIRouter

from .auth0 import router as auth0_router

ROUTERS = [
    auth0_router,
]


api_router = APIRouter()
for router in ROUTERS:
    api_router.include_router(router)

__all__ = ["api_router"]
