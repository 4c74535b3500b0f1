"""
Authentication endpoints.

This module provides:
- Google sign-in (ID token exchanged for our JWT)
- Current user profile

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.core.google_oauth import sign_in, verify_google_token
from kbase.core.logging import get_logger
from kbase.core.security import create_access_token
from kbase.db.deps import get_db
from kbase.models.user import User
from kbase.schemas.auth import GoogleSignInRequest, Token, UserRead

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/google", response_model=Token)
async def google_sign_in(
    payload: GoogleSignInRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Sign in with a Google ID token.

    Only e-mails on the allow-list are accepted (403 otherwise). The
    returned token goes in ``Authorization: Bearer <access_token>``.
    """
    identity = await verify_google_token(payload.id_token)
    user = await sign_in(db, identity)
    await db.commit()

    access_token = create_access_token(data={"sub": user.email})
    logger.info("user_signed_in", user_id=user.id, email=user.email)

    return Token(access_token=access_token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_active_user)):
    return current_user
