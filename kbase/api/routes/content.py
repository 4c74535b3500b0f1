"""
Content API endpoints.

CRUD for videos, articles and books plus the filtered, paginated listing.
Services raise domain errors (``kbase.core.errors``); the handlers in
``kbase.main`` turn them into responses, so routes only commit.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.db.deps import get_db
from kbase.models.content import ContentStatus, ContentType
from kbase.models.user import User
from kbase.schemas.content import (
    ContentCreate,
    ContentFilterParams,
    ContentPage,
    ContentRead,
    ContentUpdate,
    DeleteResponse,
    Pagination,
)
from kbase.schemas.validation import validate_payload
from kbase.services.content_repository import get_content_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["Content"])


@router.get(
    "",
    response_model=ContentPage,
    summary="List content",
)
async def list_content(
    type: Optional[ContentType] = Query(None),
    status_filter: Optional[ContentStatus] = Query(None, alias="status"),
    list_id: Optional[int] = Query(None, alias="listId"),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List the current user's content.

    Filters combine with AND. ``search`` matches title, description and
    personal notes case-insensitively.
    """
    filters = validate_payload(ContentFilterParams, {
        "type": type,
        "status": status_filter,
        "list_id": list_id,
        "search": search,
        "page": page,
        "limit": limit,
        "sort_by": sort_by,
        "sort_order": sort_order,
    })

    items, total = await get_content_repository(db).list(current_user.id, filters)

    return ContentPage(
        data=[ContentRead.model_validate(item) for item in items],
        pagination=Pagination(
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=math.ceil(total / filters.limit) if total else 0,
        ),
    )


@router.post(
    "",
    response_model=ContentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create content",
)
async def create_content(
    payload: ContentCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Save a new video, article or book.

    Metadata, list memberships and tags are attached best effort: if one
    of them fails the item is still created.
    """
    content = await get_content_repository(db).create(current_user.id, payload)
    await db.commit()
    return content


@router.get("/{content_id}", response_model=ContentRead, summary="Get content")
async def get_content(
    content_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_content_repository(db).get(current_user.id, content_id)


@router.put("/{content_id}", response_model=ContentRead, summary="Update content")
async def update_content(
    content_id: int,
    payload: ContentUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; only the fields present in the body change."""
    content = await get_content_repository(db).update(current_user.id, content_id, payload)
    await db.commit()
    return content


@router.delete("/{content_id}", response_model=DeleteResponse, summary="Delete content")
async def delete_content(
    content_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await get_content_repository(db).delete(current_user.id, content_id)
    await db.commit()
    return DeleteResponse()
