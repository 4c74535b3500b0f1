"""User settings (display preferences) endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.db.deps import get_db
from kbase.models.user import User
from kbase.schemas.preferences import PreferencesRead, PreferencesUpdate
from kbase.services.preferences import get_preferences_service

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=PreferencesRead, summary="Get preferences")
async def get_settings(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns the stored preferences, creating the defaults on first read."""
    preferences = await get_preferences_service(db).get_or_create(current_user.id)
    await db.commit()
    return preferences


@router.put("", response_model=PreferencesRead, summary="Update preferences")
async def update_settings(
    payload: PreferencesUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    preferences = await get_preferences_service(db).update(current_user.id, payload)
    await db.commit()
    return preferences
