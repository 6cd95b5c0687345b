"""
Tests for Auth0Client against an in-process httpx.MockTransport.
"""

from typing import Callable, List
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from auth0_bridge.common.exceptions import (
    ConfigurationError,
    InvalidStateError,
    UpstreamClientError,
    UpstreamError,
)
from auth0_bridge.core.auth0.client import Auth0Client
from auth0_bridge.core.auth0.config import Auth0Config

REDIRECT_URI = "https://site.com/auth0/callback"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    config: Auth0Config = None,
) -> Auth0Client:
    config = config or Auth0Config(domain="t.auth0.com", client_id="abc", client_secret="s3cret")
    return Auth0Client(config, timeout=2.0, transport=httpx.MockTransport(handler))


def _token_and_userinfo_handler(calls: List[httpx.Request], userinfo: dict = None):
    userinfo = userinfo if userinfo is not None else {"sub": "auth0|1", "email": "alice@x.com", "name": "Alice L"}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "at", "refresh_token": "rt", "id_token": None})
        if request.url.path == "/userinfo":
            return httpx.Response(200, json=userinfo)
        return httpx.Response(404)

    return handler


def _query(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


# ---------------------------------------------------------------------------
# Authorization URL
# ---------------------------------------------------------------------------


class TestBuildAuthorizationUrl:
    @pytest.mark.asyncio
    async def test_uses_discovered_endpoint(self):
        def handler(request):
            assert request.url.path == "/.well-known/openid-configuration"
            return httpx.Response(200, json={"authorization_endpoint": "https://login.example.com/authorize"})

        url = await _make_client(handler).build_authorization_url(REDIRECT_URI, "st")

        assert url.startswith("https://login.example.com/authorize?")
        assert _query(url) == {
            "client_id": "abc",
            "redirect_uri": REDIRECT_URI,
            "response_type": "code",
            "scope": "openid profile email",
            "state": "st",
        }

    @pytest.mark.asyncio
    async def test_falls_back_on_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        url = await _make_client(handler).build_authorization_url(REDIRECT_URI, "st")

        assert url.startswith("https://t.auth0.com/authorize?")
        assert _query(url)["state"] == "st"

    @pytest.mark.asyncio
    async def test_fallback_is_request_equivalent(self):
        """Discovered and fallback URLs carry identical query parameters."""

        def discovered(request):
            return httpx.Response(200, json={"authorization_endpoint": "https://t.auth0.com/authorize"})

        def broken(request):
            return httpx.Response(500, text="oops")

        primary = await _make_client(discovered).build_authorization_url(REDIRECT_URI, "st")
        fallback = await _make_client(broken).build_authorization_url(REDIRECT_URI, "st")

        assert primary == fallback

    @pytest.mark.asyncio
    async def test_falls_back_on_metadata_without_endpoint(self):
        def handler(request):
            return httpx.Response(200, json={"issuer": "https://t.auth0.com/"})

        url = await _make_client(handler).build_authorization_url(REDIRECT_URI, "st")
        assert url.startswith("https://t.auth0.com/authorize?")

    @pytest.mark.asyncio
    async def test_not_configured_never_falls_back(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        client = _make_client(handler, Auth0Config(domain="t.auth0.com", client_id="abc"))
        with pytest.raises(ConfigurationError):
            await client.build_authorization_url(REDIRECT_URI, "st")
        assert calls == []


# ---------------------------------------------------------------------------
# Code exchange
# ---------------------------------------------------------------------------


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_success(self):
        calls: List[httpx.Request] = []
        client = _make_client(_token_and_userinfo_handler(calls))

        claims = await client.exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")

        assert claims.subject == "auth0|1"
        assert claims.email == "alice@x.com"
        assert claims.access_token == "at"
        assert claims.refresh_token == "rt"

        token_request, userinfo_request = calls
        assert token_request.method == "POST"
        form = parse_qs(token_request.content.decode())
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["code-1"]
        assert form["redirect_uri"] == [REDIRECT_URI]
        assert form["client_secret"] == ["s3cret"]
        assert userinfo_request.headers["Authorization"] == "Bearer at"

    @pytest.mark.asyncio
    async def test_state_mismatch(self):
        calls: List[httpx.Request] = []
        client = _make_client(_token_and_userinfo_handler(calls))

        with pytest.raises(InvalidStateError):
            await client.exchange_code("code-1", "forged", REDIRECT_URI, expected_state="st")
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_session_state(self):
        client = _make_client(_token_and_userinfo_handler([]))
        with pytest.raises(InvalidStateError):
            await client.exchange_code("code-1", "st", REDIRECT_URI, expected_state=None)

    @pytest.mark.asyncio
    async def test_stateless_mode_skips_state_check(self):
        config = Auth0Config(domain="t.auth0.com", client_id="abc", client_secret="s", stateless_mode=True)
        client = _make_client(_token_and_userinfo_handler([]), config)

        claims = await client.exchange_code("code-1", "anything", REDIRECT_URI, expected_state=None)
        assert claims.subject == "auth0|1"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_client_error(self):
        def handler(request):
            return httpx.Response(401, json={"error": "invalid_grant"})

        with pytest.raises(UpstreamClientError) as exc_info:
            await _make_client(handler).exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")

        assert exc_info.value.status_code_upstream == 401
        assert "invalid_grant" in exc_info.value.body
        assert exc_info.value.status_code == 502
        # body is logged, never surfaced
        assert "invalid_grant" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_raises_upstream_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            await _make_client(handler).exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")
        assert not isinstance(exc_info.value, UpstreamClientError)

    @pytest.mark.asyncio
    async def test_non_json_body_raises_upstream_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>not json</html>")

        with pytest.raises(UpstreamError):
            await _make_client(handler).exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")

    @pytest.mark.asyncio
    async def test_missing_access_token(self):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer"})

        with pytest.raises(UpstreamError):
            await _make_client(handler).exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")

    @pytest.mark.asyncio
    async def test_profile_without_email(self):
        client = _make_client(_token_and_userinfo_handler([], userinfo={"sub": "auth0|1"}))
        with pytest.raises(UpstreamError):
            await client.exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = _make_client(_token_and_userinfo_handler([]), Auth0Config())
        with pytest.raises(ConfigurationError):
            await client.exchange_code("code-1", "st", REDIRECT_URI, expected_state="st")
