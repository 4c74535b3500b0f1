"""
List API endpoints.

User-defined lists ("Read later", "Favorites", ...) and which content
belongs to them.
"""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.db.deps import get_db
from kbase.models.user import User
from kbase.schemas.content import ContentRead, DeleteResponse
from kbase.schemas.lists import (
    AddContentsRequest,
    AddContentsResponse,
    ListCreate,
    ListDetail,
    ListRead,
    ListUpdate,
    ListWithCount,
    RemoveContentRequest,
    RemoveContentResponse,
)
from kbase.services.lists import get_list_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lists", tags=["Lists"])


# ========================================
# CRUD
# ========================================

@router.get("", response_model=List[ListWithCount], summary="List all lists")
async def list_lists(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await get_list_service(db).list_all(current_user.id)
    return [
        ListWithCount(
            **ListRead.model_validate(summary.list).model_dump(),
            content_count=summary.content_count,
        )
        for summary in summaries
    ]


@router.post(
    "",
    response_model=ListRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a list",
)
async def create_list(
    payload: ListCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    user_list = await get_list_service(db).create(current_user.id, payload)
    await db.commit()
    return user_list


@router.get("/{list_id}", response_model=ListDetail, summary="Get a list with its content")
async def get_list(
    list_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await get_list_service(db).get(current_user.id, list_id)
    return ListDetail(
        **ListRead.model_validate(detail.list).model_dump(),
        content_count=detail.content_count,
        contents=[ContentRead.model_validate(content) for content in detail.contents],
    )


@router.put("/{list_id}", response_model=ListRead, summary="Update a list")
async def update_list(
    list_id: int,
    payload: ListUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    user_list = await get_list_service(db).update(current_user.id, list_id, payload)
    await db.commit()
    return user_list


@router.delete("/{list_id}", response_model=DeleteResponse, summary="Delete a list")
async def delete_list(
    list_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the list. The content in it is kept."""
    await get_list_service(db).delete(current_user.id, list_id)
    await db.commit()
    return DeleteResponse()


# ========================================
# Membership
# ========================================

@router.post(
    "/{list_id}/contents",
    response_model=AddContentsResponse,
    summary="Add content to a list",
)
async def add_contents(
    list_id: int,
    payload: AddContentsRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Items already in the list are skipped; ``added`` counts the new ones."""
    result = await get_list_service(db).add_content(current_user.id, list_id, payload.content_ids)
    await db.commit()
    return AddContentsResponse(message=result.message, added=result.added)


@router.delete(
    "/{list_id}/contents",
    response_model=RemoveContentResponse,
    summary="Remove content from a list",
)
async def remove_content(
    list_id: int,
    payload: RemoveContentRequest = Body(...),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await get_list_service(db).remove_content(current_user.id, list_id, payload.content_id)
    await db.commit()
    return RemoveContentResponse()
