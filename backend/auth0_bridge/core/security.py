"""
Security helpers - session JWT and unusable passwords
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from .settings import settings

SESSION_TOKEN_TYPE = "session"


def generate_token(length: int = 32) -> str:
    """Random URL-safe token"""
    return secrets.token_urlsafe(length)


def generate_unusable_password_hash(length: int = 32) -> str:
    """
    SHA-256 of a random password that is immediately discarded.

    Accounts provisioned through Auth0 never sign in with a local password.
    """
    random_password = secrets.token_urlsafe(length)[:length]
    return hashlib.sha256(random_password.encode()).hexdigest()


class TokenPayload(BaseModel):
    """Session token payload"""

    sub: str  # user_id
    exp: datetime
    iat: datetime
    type: str = SESSION_TOKEN_TYPE


def create_session_token(subject: str | Any, expires_delta: Optional[timedelta] = None) -> str:
    """Sign the persistent ("remember me") session token"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.remember_days))

    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "type": SESSION_TOKEN_TYPE,
    }

    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return str(encoded_jwt)


def decode_session_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode a session token; None when invalid or expired"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != SESSION_TOKEN_TYPE:
        return None
    return TokenPayload(**payload)
