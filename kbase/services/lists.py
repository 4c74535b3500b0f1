"""
List Service

User-defined lists and their content memberships.

Membership writes are idempotent:
- adding content that is already in the list is filtered out, not an error
- removing content that is not in the list still succeeds

Only the caller's own lists and content are ever touched. A list or content
id owned by someone else behaves exactly like one that does not exist.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.errors import ContentNotFoundError, ListNotFoundError
from kbase.models.content import Content, ContentList, UserList
from kbase.schemas.lists import ListCreate, ListUpdate

logger = logging.getLogger(__name__)

LIST_FIELDS = ("name", "description", "color", "icon")


@dataclass
class AddToListResult:
    added: int
    message: str


@dataclass
class ListSummary:
    list: UserList
    content_count: int


@dataclass
class ListContents:
    list: UserList
    contents: List[Content]

    @property
    def content_count(self) -> int:
        return len(self.contents)


class ListService:
    """Service for list CRUD and membership management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================
    # Ownership helpers
    # ========================================

    async def get_owned(self, user_id: int, list_id: int) -> UserList:
        result = await self.db.execute(
            select(UserList).where(UserList.id == list_id, UserList.user_id == user_id)
        )
        user_list = result.scalar_one_or_none()
        if user_list is None:
            raise ListNotFoundError()
        return user_list

    async def owned_list_ids(self, user_id: int, list_ids: Iterable[int]) -> List[int]:
        """Filter ``list_ids`` down to lists that exist and belong to the user."""
        wanted = list(dict.fromkeys(list_ids))
        if not wanted:
            return []
        result = await self.db.execute(
            select(UserList.id).where(UserList.user_id == user_id, UserList.id.in_(wanted))
        )
        owned = set(result.scalars().all())
        return [list_id for list_id in wanted if list_id in owned]

    # ========================================
    # CRUD
    # ========================================

    async def create(self, user_id: int, payload: ListCreate) -> UserList:
        user_list = UserList(user_id=user_id, **payload.model_dump())
        self.db.add(user_list)
        await self.db.flush()
        await self.db.refresh(user_list)
        logger.info(f"Created list {user_list.id} for user {user_id}")
        return user_list

    async def list_all(self, user_id: int) -> List[ListSummary]:
        """All lists of the user with member counts, newest first."""
        member_count = func.count(ContentList.id)
        result = await self.db.execute(
            select(UserList, member_count)
            .outerjoin(ContentList, ContentList.list_id == UserList.id)
            .where(UserList.user_id == user_id)
            .group_by(UserList.id)
            .order_by(UserList.created_at.desc(), UserList.id.desc())
        )
        return [ListSummary(list=row[0], content_count=row[1]) for row in result.all()]

    async def get(self, user_id: int, list_id: int) -> ListContents:
        """A list with its content, most recently added first."""
        user_list = await self.get_owned(user_id, list_id)
        result = await self.db.execute(
            select(Content)
            .join(ContentList, ContentList.content_id == Content.id)
            .where(ContentList.list_id == list_id, Content.user_id == user_id)
            .order_by(ContentList.created_at.desc(), ContentList.id.desc())
            .execution_options(populate_existing=True)
        )
        return ListContents(list=user_list, contents=list(result.scalars().all()))

    async def update(self, user_id: int, list_id: int, payload: ListUpdate) -> UserList:
        user_list = await self.get_owned(user_id, list_id)
        changes = payload.model_dump(exclude_unset=True)
        for field in LIST_FIELDS:
            if field in changes:
                setattr(user_list, field, changes[field])
        await self.db.flush()
        await self.db.refresh(user_list)
        return user_list

    async def delete(self, user_id: int, list_id: int) -> None:
        """Delete a list. Its content stays; only memberships go."""
        await self.get_owned(user_id, list_id)
        await self.db.execute(delete(ContentList).where(ContentList.list_id == list_id))
        await self.db.execute(
            delete(UserList).where(UserList.id == list_id, UserList.user_id == user_id)
        )
        logger.info(f"Deleted list {list_id} for user {user_id}")

    # ========================================
    # Membership
    # ========================================

    async def add_content(
        self,
        user_id: int,
        list_id: int,
        content_ids: Sequence[int],
    ) -> AddToListResult:
        """
        Add content items to a list, skipping ones already in it.

        Raises:
            ListNotFoundError: list missing or not owned by the user
            ContentNotFoundError: none of the ids is the user's content
        """
        await self.get_owned(user_id, list_id)

        wanted = list(dict.fromkeys(content_ids))
        result = await self.db.execute(
            select(Content.id).where(Content.user_id == user_id, Content.id.in_(wanted))
        )
        valid_ids = set(result.scalars().all())
        if not valid_ids:
            raise ContentNotFoundError()

        result = await self.db.execute(
            select(ContentList.content_id).where(
                ContentList.list_id == list_id,
                ContentList.content_id.in_(valid_ids),
            )
        )
        existing = set(result.scalars().all())
        new_ids = [content_id for content_id in wanted if content_id in valid_ids - existing]

        if not new_ids:
            return AddToListResult(added=0, message="Content is already in the list")

        self.db.add_all(
            ContentList(list_id=list_id, content_id=content_id) for content_id in new_ids
        )
        await self.db.flush()
        logger.info(f"Added {len(new_ids)} item(s) to list {list_id}")
        return AddToListResult(added=len(new_ids), message="Content added to the list")

    async def remove_content(self, user_id: int, list_id: int, content_id: int) -> None:
        """Remove one content item from a list. Succeeds if it was not there."""
        await self.get_owned(user_id, list_id)
        await self.db.execute(
            delete(ContentList).where(
                ContentList.list_id == list_id,
                ContentList.content_id == content_id,
            )
        )

    async def set_memberships(
        self,
        user_id: int,
        content_id: int,
        list_ids: Optional[Iterable[int]],
    ) -> List[int]:
        """
        Make the content's list memberships exactly ``list_ids``.

        Ids of lists the user does not own are dropped. Returns the ids the
        content now belongs to.
        """
        target = await self.owned_list_ids(user_id, list_ids or [])
        dropped = set(list_ids or []) - set(target)
        if dropped:
            logger.warning(f"Ignoring unknown list ids {sorted(dropped)} for content {content_id}")

        result = await self.db.execute(
            select(ContentList.list_id).where(ContentList.content_id == content_id)
        )
        current = set(result.scalars().all())

        to_remove = current - set(target)
        if to_remove:
            await self.db.execute(
                delete(ContentList).where(
                    ContentList.content_id == content_id,
                    ContentList.list_id.in_(to_remove),
                )
            )

        self.db.add_all(
            ContentList(list_id=list_id, content_id=content_id)
            for list_id in target
            if list_id not in current
        )
        await self.db.flush()
        return target


def get_list_service(db: AsyncSession) -> ListService:
    return ListService(db)
