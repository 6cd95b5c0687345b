"""
Exception hierarchy and global handlers

- **Exceptions**: everything derives from `AppException(HTTPException)`, which separates the HTTP
  `status_code` from the business `code` and carries extra detail in `data`.
- **Auth0 taxonomy**: `Auth0Error` and its subclasses describe every way a login attempt can end
  early. None of them is retried; the user restarts at /auth0/login.
- **Handlers**: `register_exception_handlers` wires JSON handlers producing the
  `auth0_bridge.common.response.error_response` envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from auth0_bridge.common.response import error_response


class AppException(HTTPException):
    """Base application exception"""

    code: int
    data: Any

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        message: str = "Internal Server Error",
        *,
        code: int | None = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = status_code if code is None else code
        self.data = data

    @property
    def message(self) -> str:
        return str(self.detail)

    def __str__(self) -> str:
        return self.message


# Auth0 login flow errors


class Auth0Error(AppException):
    """Base class for login flow failures"""


class ConfigurationError(Auth0Error):
    """Domain, client id or client secret missing (503)"""

    def __init__(self, message: str = "Auth0 is not configured", *, data: Any = None):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, message=message, code=2001, data=data)


class MissingCodeError(Auth0Error):
    """Callback arrived without an authorization code (400)"""

    def __init__(self, message: str = "No authorization code received from Auth0"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message, code=2002)


class MissingStateError(Auth0Error):
    """Callback arrived without a state parameter, a possible CSRF attempt (400)"""

    def __init__(self, message: str = "No state parameter received from Auth0"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message, code=2003)


class UpstreamDeniedError(Auth0Error):
    """Auth0 reported an error on the callback (401)"""

    def __init__(self, error: str, description: Optional[str] = None):
        self.error = error
        self.description = description or ""
        message = f"Auth0 error: {error}"
        if description:
            message = f"{message} - {description}"
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=message,
            code=2005,
            data={"error": error, "error_description": self.description},
        )


class UpstreamError(Auth0Error):
    """Transport or parse failure talking to Auth0 (502)"""

    def __init__(
        self,
        message: str = "Failed to authenticate with Auth0",
        *,
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        code: int = 2007,
    ):
        super().__init__(status_code=status_code, message=message, code=code)


class UpstreamClientError(UpstreamError):
    """Auth0 answered with a non-2xx status (502); status and body are kept for logging only"""

    def __init__(self, status_code_upstream: int, body: str):
        self.status_code_upstream = status_code_upstream
        self.body = body
        super().__init__(f"Auth0 rejected the request (HTTP {status_code_upstream})", code=2006)


class InvalidStateError(UpstreamError):
    """Callback state does not match the value stored at login (400)"""

    def __init__(self, message: str = "Invalid state parameter"):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, code=2004)


class ProvisioningDisabledError(Auth0Error):
    """No matching local user and automatic account creation is off (403)"""

    def __init__(self, message: str = "Automatic user creation is disabled. Please contact the site administrator."):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, message=message, code=2008)


# Error responses and global handlers


def create_error_response(*, status_code: int, code: int, message: str, data: Any = None) -> Response:
    """Build an error_response envelope as a JSON response."""
    return JSONResponse(
        status_code=status_code,
        content=error_response(message=message, code=code, data=data),
    )


async def app_exception_handler(request: Request, exc: AppException) -> Response:
    """Handle AppException."""
    if isinstance(exc, UpstreamClientError):
        logger.error(f"Auth0 returned HTTP {exc.status_code_upstream}: {exc.body}")
    return create_error_response(
        status_code=exc.status_code,
        code=getattr(exc, "code", exc.status_code),
        message=str(exc.detail),
        data=getattr(exc, "data", None),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Handle FastAPI/Starlette HTTPException that is not an AppException."""
    return create_error_response(
        status_code=exc.status_code,
        code=exc.status_code,
        message=str(exc.detail),
        data=getattr(exc, "data", None),
    )


def _format_validation_errors(errors: Iterable[Mapping[str, Any]]) -> List[dict[str, Any]]:
    formatted: List[dict[str, Any]] = []
    for err in errors:
        loc = err.get("loc", ())
        field_path = ".".join(str(x) for x in loc)
        formatted.append(
            {
                "field": field_path,
                "message": err.get("msg"),
                "type": err.get("type"),
            }
        )
    return formatted


async def request_validation_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle RequestValidationError / PydanticValidationError."""
    errors: List[dict[str, Any]] = []
    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        errors = _format_validation_errors(exc.errors())

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Request parameter validation failed",
        data={"validation_errors": errors} if errors else None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle anything uncaught (500)."""
    from auth0_bridge.core.settings import settings

    logger.exception(f"Unhandled exception: {exc}")
    debug = bool(settings.debug)

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=str(exc) if debug else "Internal Server Error",
        data={"error_type": type(exc).__name__} if debug else None,
    )


def register_exception_handlers(app: Any) -> None:
    """Register every handler on a FastAPI app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
