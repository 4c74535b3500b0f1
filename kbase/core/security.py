"""
JWT access tokens.

Sign-in happens through Google (see ``kbase.core.google_oauth``); once the
identity is accepted the API issues its own short, signed token and every
later request carries it as ``Authorization: Bearer <token>``.

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from kbase.core.config import settings


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to include; must carry "sub" with the user's e-mail
        expires_delta: Lifetime, defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "alice@example.com"})

    The payload is signed, not encrypted: never put anything secret in it.
    """
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Verify signature and expiry, then return the claims.

    Returns:
        Dictionary of claims if valid, None if expired, tampered or malformed
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
