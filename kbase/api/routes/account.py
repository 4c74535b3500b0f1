"""
Account-wide endpoints: stats, export and account deletion.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.auth import get_current_active_user
from kbase.db.deps import get_db
from kbase.models.user import User
from kbase.schemas.account import AccountDeletionResponse, AccountStats
from kbase.services.account import get_account_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])


@router.get("/stats", response_model=AccountStats, summary="Account statistics")
async def get_stats(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_account_service(db).stats(current_user.id)


@router.get("/export", summary="Export all data")
async def export_data(
    format: str = Query("json", description="json or csv"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Download everything the user owns.

    - json: content with metadata, lists, tags and stats
    - csv: one row per content item
    """
    export = await get_account_service(db).export(current_user, format)
    return Response(
        content=export.body,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.delete("/account", response_model=AccountDeletionResponse, summary="Delete account")
async def delete_account(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Permanently delete the account and all of its data.

    The bearer token stops working once this returns.
    """
    report = await get_account_service(db).delete_account(current_user.id)
    await db.commit()
    logger.info(f"Account {current_user.id} deleted")
    return AccountDeletionResponse(skipped_steps=report.skipped_steps)
