"""
Google sign-in.

How sign-in works:
------------------
1. The frontend obtains a Google ID token (Google Identity Services)
2. It posts the token to POST /auth/google
3. We verify the token with Google (signature, audience, issuer, expiry)
4. The verified e-mail must be on the ``authorized_users`` allow-list
5. The User row is created or refreshed (name, avatar, role, last_login)
6. We issue our own JWT (see ``kbase.core.security``)

References:
-----------
- Google OAuth2: https://developers.google.com/identity/protocols/oauth2
- google-auth library: https://google-auth.readthedocs.io/
"""

import asyncio
from typing import Dict

from google.auth.transport import requests
from google.oauth2 import id_token
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.config import settings
from kbase.core.errors import AuthenticationError, NotAuthorizedUserError
from kbase.core.logging import get_logger
from kbase.db.base import utcnow
from kbase.models.user import AuthorizedUser, User

logger = get_logger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def _verify(token: str) -> Dict:
    idinfo = id_token.verify_oauth2_token(
        token,
        requests.Request(),
        settings.GOOGLE_CLIENT_ID,
    )

    if idinfo.get("iss") not in GOOGLE_ISSUERS:
        raise ValueError("Invalid issuer")
    if not idinfo.get("email_verified", False):
        raise ValueError("Email not verified")
    return idinfo


async def verify_google_token(token: str) -> Dict[str, str]:
    """
    Verify a Google ID token and extract the identity.

    Verification fetches Google's signing certificates over blocking HTTP,
    so it runs in a worker thread.

    Returns:
        {"email": ..., "name": ..., "picture": ..., "sub": ...}

    Raises:
        AuthenticationError: token invalid, expired, wrong audience or
            issuer, or e-mail not verified
    """
    try:
        idinfo = await asyncio.to_thread(_verify, token)
    except ValueError as e:
        logger.warning("google_token_rejected", error=str(e))
        raise AuthenticationError(f"Invalid Google token: {e}")
    except Exception as e:
        logger.error("google_token_verification_error", error=str(e), exc_info=True)
        raise AuthenticationError("Could not verify Google token")

    logger.info("google_token_verified", email=idinfo.get("email"))
    return {
        "email": idinfo["email"].lower(),
        "name": idinfo.get("name", ""),
        "picture": idinfo.get("picture", ""),
        "sub": idinfo["sub"],
    }


async def sign_in(db: AsyncSession, identity: Dict[str, str]) -> User:
    """
    Accept a verified identity: allow-list check, then create or refresh the user.

    Raises:
        NotAuthorizedUserError: e-mail not on the allow-list
        AuthenticationError: the account exists but is disabled
    """
    email = identity["email"].lower()

    authorized = (await db.execute(
        select(AuthorizedUser).where(func.lower(AuthorizedUser.email) == email)
    )).scalar_one_or_none()
    if authorized is None:
        logger.warning("sign_in_not_authorized", email=email)
        raise NotAuthorizedUserError()

    user = (await db.execute(
        select(User).where(func.lower(User.email) == email)
    )).scalar_one_or_none()

    if user is None:
        user = User(email=email)
        db.add(user)
        logger.info("user_created", email=email, role=str(authorized.role))
    elif not user.is_active:
        raise AuthenticationError("Inactive user")

    user.name = identity.get("name") or user.name
    user.image = identity.get("picture") or user.image
    user.role = authorized.role
    user.last_login = utcnow()
    await db.flush()
    await db.refresh(user)
    return user


def check_google_oauth_configured() -> bool:
    return bool(settings.GOOGLE_CLIENT_ID)
