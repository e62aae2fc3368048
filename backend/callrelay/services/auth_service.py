"""
Auth Service - JWT verification

Tokens are issued by the marketplace API; this service only decodes them.
`create_access_token` exists for local tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from callrelay.config.settings import settings


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=1)
    expire = datetime.utcnow() + expires_delta
    to_encode = {"sub": subject, "exp": int(expire.timestamp())}
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        return None


def identity_from_token(token: Optional[str]) -> Optional[str]:
    """Subject of a valid token, or None."""
    if not token:
        return None
    payload = decode_token(token)
    if not payload:
        return None
    return payload.get("sub")
