"""
Authentication schemas (Pydantic models for request/response).

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- FastAPI Request Body: https://fastapi.tiangolo.com/tutorial/body/
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from kbase.models.user import UserRole


class GoogleSignInRequest(BaseModel):
    """
    Google ID token obtained by the frontend (Google Identity Services).

    Example request:
        POST /api/v1/auth/google
        {"id_token": "eyJhbGciOiJSUzI1NiIsImtpZCI6..."}
    """

    id_token: str = Field(..., min_length=1, description="Google ID token (JWT)")


class UserRead(BaseModel):
    """Public view of the signed-in account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: UserRole
    last_login: Optional[datetime] = None


class Token(BaseModel):
    """
    JWT token response.

    Client should send in future requests:
        Authorization: Bearer <access_token>
    """

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Always 'bearer'")
    user: UserRead
