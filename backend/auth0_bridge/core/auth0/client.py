"""
Auth0 authorization code client.

Implements the two HTTP legs of the flow:
1. Build the /authorize redirect URL
2. Exchange the code for tokens, then fetch the profile from /userinfo
"""

import hmac
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from auth0_bridge.common.exceptions import (
    ConfigurationError,
    InvalidStateError,
    UpstreamClientError,
    UpstreamError,
)
from auth0_bridge.core.auth0.claims import ProviderClaims
from auth0_bridge.core.auth0.config import Auth0Config
from auth0_bridge.core.auth0.urls import build_authorize_url, normalize_domain
from auth0_bridge.core.settings import settings

LOG_PREFIX = "[Auth0Client]"


class Auth0Client:
    """HTTP client for one Auth0 tenant configuration snapshot."""

    def __init__(
        self,
        config: Auth0Config,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.timeout = settings.auth0_http_timeout if timeout is None else timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return normalize_domain(self.config.domain)

    def ensure_configured(self) -> None:
        if not self.config.is_configured():
            raise ConfigurationError("Auth0 is not configured. Please configure domain, client ID and client secret.")

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    # ==================== Authorization ====================

    async def discover_authorization_endpoint(self) -> str:
        """Read authorization_endpoint from the tenant's OIDC metadata."""
        async with self._http_client() as client:
            response = await client.get(f"{self.base_url}/.well-known/openid-configuration")
            response.raise_for_status()
            metadata = response.json()

        endpoint = metadata.get("authorization_endpoint") if isinstance(metadata, dict) else None
        if not isinstance(endpoint, str) or not endpoint:
            raise ValueError("OIDC metadata has no authorization_endpoint")
        return endpoint

    async def build_authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Build the /authorize URL.

        Falls back to {domain}/authorize when the tenant metadata cannot be
        fetched or parsed; both paths produce the same query parameters.

        Raises:
            ConfigurationError: domain, client id or secret missing
        """
        self.ensure_configured()

        try:
            endpoint = await self.discover_authorization_endpoint()
        except (httpx.HTTPError, ValueError) as e:
            endpoint = f"{self.base_url}/authorize"
            logger.warning(f"{LOG_PREFIX} OIDC metadata unavailable, using {endpoint}: {e}")

        return build_authorize_url(
            authorization_endpoint=endpoint,
            client_id=self.config.client_id,
            redirect_uri=redirect_uri,
            state=state,
        )

    # ==================== Code exchange ====================

    async def exchange_code(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        expected_state: Optional[str] = None,
    ) -> ProviderClaims:
        """
        Exchange an authorization code for tokens and profile claims.

        Args:
            code: Authorization code from the callback
            state: State echoed back by Auth0
            redirect_uri: Must equal the redirect_uri sent to /authorize
            expected_state: State stored in the session at login (ignored in stateless mode)

        Raises:
            InvalidStateError: state does not match the stored value
            UpstreamClientError: Auth0 answered non-2xx
            UpstreamError: transport failure, timeout or malformed response
        """
        self.ensure_configured()
        self._check_state(state, expected_state)

        tokens = await self._request_json(
            "POST",
            f"{self.base_url}/oauth/token",
            data={
                "grant_type": "authorization_code",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        access_token = tokens.get("access_token")
        if not access_token:
            raise UpstreamError("Auth0 token response did not include an access token")
        logger.info(f"{LOG_PREFIX} Token exchange successful")

        userinfo = await self.fetch_userinfo(access_token)
        claims = ProviderClaims.from_provider_response(tokens, userinfo)

        if not claims.subject:
            raise UpstreamError("Auth0 profile did not include a subject")
        if not claims.email:
            raise UpstreamError("Auth0 profile did not include an email address")
        return claims

    async def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        """GET /userinfo with the bearer access token; returns the raw claims map."""
        userinfo = await self._request_json(
            "GET",
            f"{self.base_url}/userinfo",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        logger.info(f"{LOG_PREFIX} Fetched userinfo")
        return userinfo

    def _check_state(self, state: str, expected_state: Optional[str]) -> None:
        if self.config.stateless_mode:
            logger.warning(
                f"{LOG_PREFIX} Stateless mode: state is not checked against the session, "
                "CSRF protection relies on the single-use code only"
            )
            return
        if not expected_state or not hmac.compare_digest(expected_state.encode(), state.encode()):
            logger.warning(f"{LOG_PREFIX} State mismatch on callback")
            raise InvalidStateError()

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        try:
            async with self._http_client() as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{LOG_PREFIX} {method} {url} timed out after {self.timeout}s")
            raise UpstreamError("Timed out talking to Auth0") from e
        except httpx.HTTPError as e:
            logger.error(f"{LOG_PREFIX} {method} {url} failed: {e}")
            raise UpstreamError(f"Failed to reach Auth0: {e}") from e

        if not response.is_success:
            logger.error(f"{LOG_PREFIX} {method} {url} returned HTTP {response.status_code}: {response.text}")
            raise UpstreamClientError(response.status_code, response.text)

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"{LOG_PREFIX} {method} {url} returned a non-JSON body")
            raise UpstreamError("Auth0 returned a malformed response") from e

        if not isinstance(body, dict):
            raise UpstreamError("Auth0 returned a malformed response")
        return body
