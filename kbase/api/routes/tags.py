"""Tag API endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.db.deps import get_db
from kbase.models.user import User
from kbase.schemas.account import TagWithCount
from kbase.services.tags import get_tag_service

router = APIRouter(prefix="/tags", tags=["Tags"])


@router.get("", response_model=List[TagWithCount], summary="Tags with usage counts")
async def list_tags(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """All of the user's tags, most used first."""
    return await get_tag_service(db).list_with_counts(current_user.id)
