"""
Authentication dependencies for FastAPI.

Every route except sign-in, health and root requires
``Authorization: Bearer <token>``. The token's "sub" claim is the user's
e-mail; the user is loaded fresh on each request so a deleted or disabled
account loses access immediately.

References:
-----------
- FastAPI Security Tutorial: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from kbase.core.security import decode_access_token
from kbase.db.deps import DBSession
from kbase.models.user import User

# auto_error=False so a missing header gets the same 401 as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    db: DBSession,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """
    Resolve the bearer token to a User.

    Raises:
        HTTPException 401: missing, invalid or expired token, or unknown user
    """
    if credentials is None:
        raise _credentials_exception("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_exception()

    email: str | None = payload.get("sub")
    if email is None:
        raise _credentials_exception()

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        raise _credentials_exception()

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Like get_current_user, but disabled accounts are rejected."""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    return current_user


CurrentUser = Annotated[User, Depends(get_current_active_user)]
