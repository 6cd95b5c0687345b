"""
URL helpers for the Auth0 flow: tenant base URL, request origin, callback and
logout URLs, and same-origin sanitization of post-login redirect targets.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

from fastapi import Request

CALLBACK_PATH = "/auth0/callback"
DEFAULT_SCOPE = "openid profile email"


@dataclass(frozen=True)
class RequestOrigin:
    """Scheme and host the browser used to reach us."""

    scheme: str
    http_host: str  # host[:port]

    @property
    def host(self) -> str:
        """Hostname without port, lowercased."""
        return (urlsplit(f"//{self.http_host}").hostname or "").lower()

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.http_host}"

    @classmethod
    def from_request(cls, request: Request, trust_proxy_headers: bool = True) -> "RequestOrigin":
        """Honor X-Forwarded-Proto (https only) / X-Forwarded-Host when the proxy is trusted."""
        scheme = request.url.scheme
        http_host = request.headers.get("host") or request.url.netloc

        if trust_proxy_headers:
            forwarded_proto = _first_header_value(request.headers.get("x-forwarded-proto"))
            forwarded_host = _first_header_value(request.headers.get("x-forwarded-host"))
            # The proxy can upgrade the scheme, never downgrade it
            if forwarded_proto.lower() == "https":
                scheme = "https"
            if forwarded_host:
                http_host = forwarded_host

        return cls(scheme=scheme, http_host=http_host)


def _first_header_value(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.split(",")[0].strip()


def get_client_ip(request: Request, trust_proxy_headers: bool = True) -> str:
    """Client IP, first X-Forwarded-For hop when the proxy is trusted."""
    ip = request.client.host if request.client else "unknown"
    if trust_proxy_headers:
        forwarded_for = _first_header_value(request.headers.get("X-Forwarded-For"))
        if forwarded_for:
            ip = forwarded_for
    return ip


def normalize_domain(domain: str) -> str:
    """'tenant.auth0.com' -> 'https://tenant.auth0.com'; an explicit scheme is kept."""
    domain = domain.strip().rstrip("/")
    if not domain.startswith(("https://", "http://")):
        domain = f"https://{domain}"
    return domain


def resolve_callback_url(configured_callback_url: str, origin: RequestOrigin) -> str:
    if configured_callback_url.strip():
        return configured_callback_url.strip()
    return f"{origin.base_url}{CALLBACK_PATH}"


def build_authorize_url(
    authorization_endpoint: str,
    client_id: str,
    redirect_uri: str,
    state: str,
    scope: str = DEFAULT_SCOPE,
) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": scope,
        "state": state,
    }
    return f"{authorization_endpoint}?{urlencode(params)}"


def build_logout_url(domain: str, client_id: str, return_to: str) -> str:
    params = {"client_id": client_id, "returnTo": return_to}
    return f"{normalize_domain(domain)}/v2/logout?{urlencode(params)}"


def sanitize_redirect_path(intended: Optional[str], origin: RequestOrigin) -> str:
    """
    Reduce a post-login target to a same-origin path.

    Absolute (or scheme-relative) URLs survive only when their host equals the
    request host, and then only as path+query+fragment. The result always starts
    with '/'.
    """
    if not intended or intended == "/":
        return "/"

    try:
        parsed = urlsplit(intended)
        target_host = (parsed.hostname or "").lower()
    except ValueError:
        return "/"

    if parsed.netloc:
        if target_host != origin.host:
            return "/"
        path = parsed.path or "/"
        if parsed.query:
            path += f"?{parsed.query}"
        if parsed.fragment:
            path += f"#{parsed.fragment}"
    else:
        path = intended

    if not path.startswith("/"):
        path = f"/{path}"
    return path
