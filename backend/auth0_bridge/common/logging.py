"""
Logging setup and request logging middleware

Request lines carry trace_id, method, path and the proxy-aware client IP.
Authorization codes, state values and tokens in the query string are masked
before they reach any sink.
"""

import sys
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from auth0_bridge.core.auth0.urls import get_client_ip
from auth0_bridge.core.settings import settings

REDACTED = "***"
SENSITIVE_QUERY_PARAMS = frozenset({"code", "state", "access_token", "id_token", "refresh_token"})

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "trace_id={extra[trace_id]} | "
    "{extra[method]} {extra[path]} | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | trace_id={extra[trace_id]} | "
    "{extra[method]} {extra[path]} | {extra[client]} | {name}:{function}:{line} | {message}"
)


def redact_query(query: str) -> str:
    """Mask OAuth secrets in a raw query string: 'code=abc&x=1' -> 'code=***&x=1'."""
    if not query:
        return ""
    pairs = [
        (key, REDACTED if key in SENSITIVE_QUERY_PARAMS else value)
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(pairs, safe="*")


class LoggingMiddleware(BaseHTTPMiddleware):
    """HTTP request logging middleware"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        method = request.method
        path = request.url.path
        query = redact_query(request.url.query)
        client_ip = get_client_ip(request, settings.trust_proxy_headers)

        trace_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.trace_id = trace_id
        log = logger.bind(trace_id=trace_id, method=method, path=path, client=client_ip)

        log.info(f"request.start query={query or '-'}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            log.opt(exception=True).error(f"request.failed duration={process_time:.3f}s error={type(e).__name__}")
            raise

        process_time = time.time() - start_time
        status_code = response.status_code
        message = f"request.completed status={status_code} duration={process_time:.3f}s"

        if status_code >= 500:
            log.error(message)
        elif status_code >= 400:
            log.warning(message)
        else:
            log.info(message)

        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Trace-Id"] = trace_id
        return response


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None):
    """
    Configure loguru: colored console output, plus rotating files when `log_dir`
    is set and writable.
    """
    logger.remove()
    logger.configure(extra={"trace_id": "-", "method": "-", "path": "-", "client": "-"})

    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_dir:
        directory = Path(log_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            logger.add(
                directory / "auth0_bridge.log",
                rotation="100 MB",
                retention="30 days",
                compression="zip",
                format=FILE_FORMAT,
                level=level,
            )
            logger.add(
                directory / "error.log",
                rotation="50 MB",
                retention="30 days",
                compression="zip",
                format=FILE_FORMAT,
                level="ERROR",
            )
        except OSError as e:
            logger.warning(f"File logging disabled, cannot write to {directory}: {e}")

    logger.info(f"Logging initialized (level={level}, files={log_dir or 'off'})")
