"""
Tag Service

Per-user tags with normalized names, and the content <-> tag association.

Tag names are trimmed and lowercased before every lookup and insert, so
"  AI ", "ai" and "AI" resolve to one tag. The unique constraint on
(user_id, name) makes concurrent creation of the same tag safe: the loser
of the race re-reads the winner's row.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.models.content import ContentTag, Tag

logger = logging.getLogger(__name__)


class TagService:
    """Service for tag lookup, creation and association."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def normalize(raw_name: str) -> str:
        return raw_name.strip().lower()

    async def find(self, user_id: int, name: str) -> Optional[Tag]:
        result = await self.db.execute(
            select(Tag).where(Tag.user_id == user_id, Tag.name == name)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: int, raw_name: str) -> Optional[int]:
        """
        Return the id of the user's tag named ``raw_name``, creating it if needed.

        Returns None when the name is empty after normalization; callers skip
        such entries.
        """
        name = self.normalize(raw_name)
        if not name:
            return None

        existing = await self.find(user_id, name)
        if existing is not None:
            return existing.id

        tag = Tag(user_id=user_id, name=name)
        try:
            async with self.db.begin_nested():
                self.db.add(tag)
                await self.db.flush()
        except IntegrityError:
            # Created concurrently by another request
            logger.info(f"Tag '{name}' already created for user {user_id}, re-reading")
            existing = await self.find(user_id, name)
            if existing is None:
                raise
            return existing.id

        return tag.id

    async def attach(self, content_id: int, tag_id: int) -> bool:
        """
        Associate a tag with a content item.

        Returns:
            True if a new association was written, False if it already existed
        """
        result = await self.db.execute(
            select(ContentTag.id).where(
                ContentTag.content_id == content_id,
                ContentTag.tag_id == tag_id,
            )
        )
        if result.scalar_one_or_none() is not None:
            return False

        self.db.add(ContentTag(content_id=content_id, tag_id=tag_id))
        await self.db.flush()
        return True

    async def list_with_counts(self, user_id: int) -> List[dict]:
        """
        All of the user's tags with how many content items use each.

        Most-used first; ties broken alphabetically.
        """
        usage = func.count(ContentTag.id).label("count")
        result = await self.db.execute(
            select(Tag.id, Tag.name, usage)
            .outerjoin(ContentTag, ContentTag.tag_id == Tag.id)
            .where(Tag.user_id == user_id)
            .group_by(Tag.id, Tag.name)
            .order_by(usage.desc(), Tag.name.asc())
        )
        return [
            {"id": tag_id, "name": name, "count": count}
            for tag_id, name, count in result.all()
        ]


def get_tag_service(db: AsyncSession) -> TagService:
    return TagService(db)
