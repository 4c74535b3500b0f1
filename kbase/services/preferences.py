"""
Preferences Service

One preferences row per user, created with defaults the first time it is
read or written.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.models.user import UserPreferences
from kbase.schemas.preferences import PreferencesUpdate

logger = logging.getLogger(__name__)

PREFERENCE_FIELDS = (
    "display_name",
    "default_view",
    "default_sort",
    "default_sort_order",
    "items_per_page",
)


class PreferencesService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, user_id: int) -> UserPreferences | None:
        result = await self.db.execute(
            select(UserPreferences).where(UserPreferences.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: int) -> UserPreferences:
        preferences = await self._find(user_id)
        if preferences is not None:
            return preferences

        preferences = UserPreferences(user_id=user_id)
        try:
            async with self.db.begin_nested():
                self.db.add(preferences)
                await self.db.flush()
        except IntegrityError:
            # Another request created them first
            existing = await self._find(user_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Created default preferences for user {user_id}")
        return preferences

    async def update(self, user_id: int, payload: PreferencesUpdate) -> UserPreferences:
        preferences = await self.get_or_create(user_id)
        changes = payload.model_dump(exclude_unset=True)
        for field in PREFERENCE_FIELDS:
            if field in changes:
                setattr(preferences, field, changes[field])
        await self.db.flush()
        return preferences


def get_preferences_service(db: AsyncSession) -> PreferencesService:
    return PreferencesService(db)
