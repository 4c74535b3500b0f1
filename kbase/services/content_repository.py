"""
Content Repository

Create, read, update, delete and list content items together with the
records that hang off them (type metadata, tags, list memberships).

Transaction shape:
------------------
Every operation runs inside the caller's session transaction; the route
commits once at the end. Writing the content row itself is the only step
whose failure aborts a create. Metadata, list memberships and each tag are
written in their own SAVEPOINT (``BestEffortStep``): a failure there is
logged, rolled back alone, and the item is still saved.

completed_at:
-------------
- set to now when status becomes ``completed`` from anything else
  (including creating an item as completed)
- cleared when status goes from ``completed`` back to ``pending``
- untouched otherwise
"""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.errors import ContentNotFoundError
from kbase.db.base import utcnow
from kbase.db.deps import BestEffortStep
from kbase.models.content import (
    METADATA_MODELS,
    Content,
    ContentList,
    ContentStatus,
    ContentTag,
    ContentType,
)
from kbase.schemas.content import (
    ContentCreate,
    ContentFilterParams,
    ContentMetadataInput,
    ContentUpdate,
)
from kbase.services.lists import ListService
from kbase.services.tags import TagService

logger = logging.getLogger(__name__)

# Scalar columns a client may write, in the order they are applied
CONTENT_FIELDS = (
    "type",
    "status",
    "title",
    "url",
    "description",
    "summary",
    "related_links",
    "rating",
    "personal_notes",
)

SORTABLE_FIELDS = ("created_at", "updated_at", "completed_at", "title", "rating")


def next_completed_at(content: Content, previous_status: Optional[ContentStatus]):
    """Value of ``completed_at`` after moving from ``previous_status`` to ``content.status``."""
    if content.status == ContentStatus.COMPLETED and previous_status != ContentStatus.COMPLETED:
        return utcnow()
    if content.status == ContentStatus.PENDING and previous_status == ContentStatus.COMPLETED:
        return None
    return content.completed_at


def metadata_values(content_type: ContentType, metadata: ContentMetadataInput) -> dict:
    """
    Pick the fields of ``metadata`` that belong to ``content_type``.

    Video durations are entered in minutes and stored in seconds.
    """
    data = metadata.model_dump()
    values = {}
    for field in METADATA_MODELS[content_type].FIELDS:
        if field == "duration_seconds":
            minutes = data.get("duration_minutes")
            values[field] = minutes * 60 if minutes is not None else None
        else:
            values[field] = data.get(field)
    return values


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContentRepository:
    """Repository for the content aggregate."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tags = TagService(db)
        self.lists = ListService(db)

    # ========================================
    # Read
    # ========================================

    async def get(self, user_id: int, content_id: int) -> Content:
        """
        Load one item with metadata, tags and lists.

        Raises:
            ContentNotFoundError: missing, or owned by another user
        """
        result = await self.db.execute(
            select(Content)
            .where(Content.id == content_id, Content.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        content = result.scalar_one_or_none()
        if content is None:
            raise ContentNotFoundError()
        return content

    async def list(self, user_id: int, filters: ContentFilterParams) -> Tuple[List[Content], int]:
        """
        Filtered, sorted page of the user's content.

        Returns:
            (items on the requested page, total matching items)
        """
        query = select(Content).where(Content.user_id == user_id)

        if filters.type:
            query = query.where(Content.type == filters.type)
        if filters.status:
            query = query.where(Content.status == filters.status)
        if filters.list_id is not None:
            query = query.where(
                Content.id.in_(
                    select(ContentList.content_id).where(ContentList.list_id == filters.list_id)
                )
            )
        if filters.search and filters.search.strip():
            pattern = f"%{escape_like(filters.search.strip())}%"
            query = query.where(
                or_(
                    Content.title.ilike(pattern, escape="\\"),
                    Content.description.ilike(pattern, escape="\\"),
                    Content.personal_notes.ilike(pattern, escape="\\"),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        sort_column = getattr(Content, filters.sort_by if filters.sort_by in SORTABLE_FIELDS else "created_at")
        ordering = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        query = (
            query.order_by(ordering.nulls_last(), Content.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .execution_options(populate_existing=True)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0

    # ========================================
    # Create
    # ========================================

    async def create(self, user_id: int, payload: ContentCreate) -> Content:
        """Save a new item and whatever metadata, lists and tags came with it."""
        content = Content(
            user_id=user_id,
            type=payload.type,
            status=payload.status,
            title=payload.title,
            url=payload.url,
            description=payload.description,
            summary=payload.summary,
            related_links=[link.model_dump() for link in payload.related_links],
            rating=payload.rating,
            personal_notes=payload.personal_notes,
        )
        content.completed_at = next_completed_at(content, previous_status=None)
        self.db.add(content)
        await self.db.flush()
        content_id = content.id

        if payload.metadata is not None:
            values = metadata_values(payload.type, payload.metadata)
            if any(value is not None for value in values.values()):
                async with BestEffortStep(self.db, "write_metadata", content_id=content_id):
                    self.db.add(METADATA_MODELS[payload.type](content_id=content_id, **values))
                    await self.db.flush()

        if payload.list_ids:
            async with BestEffortStep(self.db, "attach_lists", content_id=content_id):
                await self.lists.set_memberships(user_id, content_id, payload.list_ids)

        if payload.tags:
            await self._attach_tags(user_id, content_id, payload.tags)

        logger.info(f"Created {payload.type} content {content_id} for user {user_id}")
        return await self.get(user_id, content_id)

    # ========================================
    # Update
    # ========================================

    async def update(self, user_id: int, content_id: int, payload: ContentUpdate) -> Content:
        """
        Apply a partial update.

        Only fields present in the request are written. ``tags`` and
        ``listIds``, when present, replace the current set.
        """
        content = await self.get(user_id, content_id)
        previous_type = ContentType(content.type)
        previous_status = ContentStatus(content.status)

        changes = payload.model_dump(include=set(CONTENT_FIELDS), exclude_unset=True)
        for field in CONTENT_FIELDS:
            if field in changes:
                setattr(content, field, changes[field])

        content.completed_at = next_completed_at(content, previous_status)
        content.updated_at = utcnow()
        await self.db.flush()

        effective_type = ContentType(content.type)
        if effective_type != previous_type:
            # Metadata must live in the table of the current type
            await self._delete_metadata(content_id, keep=effective_type)

        if payload.metadata is not None:
            async with BestEffortStep(self.db, "write_metadata", content_id=content_id):
                await self._upsert_metadata(content_id, effective_type, payload.metadata)

        if "list_ids" in payload.model_fields_set:
            async with BestEffortStep(self.db, "replace_lists", content_id=content_id):
                await self.lists.set_memberships(user_id, content_id, payload.list_ids or [])

        if "tags" in payload.model_fields_set:
            await self.db.execute(delete(ContentTag).where(ContentTag.content_id == content_id))
            await self._attach_tags(user_id, content_id, payload.tags or [])

        logger.info(f"Updated content {content_id} for user {user_id}")
        return await self.get(user_id, content_id)

    # ========================================
    # Delete
    # ========================================

    async def delete(self, user_id: int, content_id: int) -> None:
        """
        Delete an item together with its associations and metadata.

        Dependents are removed explicitly, child tables first, then the
        content row itself.
        """
        owned = await self.db.scalar(
            select(Content.id).where(Content.id == content_id, Content.user_id == user_id)
        )
        if owned is None:
            raise ContentNotFoundError()

        await self.db.execute(delete(ContentList).where(ContentList.content_id == content_id))
        await self.db.execute(delete(ContentTag).where(ContentTag.content_id == content_id))
        await self._delete_metadata(content_id)
        await self.db.execute(
            delete(Content).where(Content.id == content_id, Content.user_id == user_id)
        )
        logger.info(f"Deleted content {content_id} for user {user_id}")

    # ========================================
    # Helpers
    # ========================================

    async def _attach_tags(self, user_id: int, content_id: int, raw_names: Iterable[str]) -> None:
        for raw_name in raw_names:
            async with BestEffortStep(self.db, "attach_tag", content_id=content_id, tag=raw_name):
                tag_id = await self.tags.get_or_create(user_id, raw_name)
                if tag_id is not None:
                    await self.tags.attach(content_id, tag_id)

    async def _upsert_metadata(
        self,
        content_id: int,
        content_type: ContentType,
        metadata: ContentMetadataInput,
    ) -> None:
        """Replace every field of the type's metadata row, inserting it if missing."""
        model = METADATA_MODELS[content_type]
        values = metadata_values(content_type, metadata)

        result = await self.db.execute(select(model).where(model.content_id == content_id))
        record = result.scalar_one_or_none()

        if record is None:
            if not any(value is not None for value in values.values()):
                return
            self.db.add(model(content_id=content_id, **values))
        else:
            for field, value in values.items():
                setattr(record, field, value)
        await self.db.flush()

    async def _delete_metadata(self, content_id: int, keep: Optional[ContentType] = None) -> None:
        for content_type, model in METADATA_MODELS.items():
            if content_type == keep:
                continue
            await self.db.execute(delete(model).where(model.content_id == content_id))


def get_content_repository(db: AsyncSession) -> ContentRepository:
    return ContentRepository(db)
