"""
Service layer
"""

from .auth0_login_service import Auth0LoginService, CallbackResult
from .base import BaseService
from .user_reconciliation_service import (
    PostReconcileHook,
    ReconciliationPolicy,
    ReconciliationResult,
    UserReconciliationService,
)

__all__ = [
    "BaseService",
    "Auth0LoginService",
    "CallbackResult",
    "UserReconciliationService",
    "ReconciliationPolicy",
    "ReconciliationResult",
    "PostReconcileHook",
]
