"""
Auth0 integration: tenant configuration, HTTP client, claims and URL helpers.
"""

from .claims import ProviderClaims, derive_name
from .client import Auth0Client
from .config import Auth0Config, Auth0ConfigLoader, get_auth0_config
from .urls import RequestOrigin, get_client_ip, resolve_callback_url, sanitize_redirect_path

__all__ = [
    "Auth0Client",
    "Auth0Config",
    "Auth0ConfigLoader",
    "get_auth0_config",
    "ProviderClaims",
    "derive_name",
    "RequestOrigin",
    "get_client_ip",
    "resolve_callback_url",
    "sanitize_redirect_path",
]
