"""
Metadata lookup endpoints.

Suggestions for the content form: a YouTube URL resolves to title,
channel, thumbnail and so on; a book query searches Google Books.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from kbase.core.auth import get_current_active_user
from kbase.models.user import User
from kbase.schemas.metadata import BookSearchResponse, VideoLookup
from kbase.services.books import BookCatalogService, get_book_catalog_service
from kbase.services.youtube import YouTubeService, get_youtube_service

router = APIRouter(prefix="/metadata", tags=["Metadata"])


@router.get("/youtube", response_model=VideoLookup, summary="Look up a YouTube video")
async def lookup_video(
    url: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_active_user),
    youtube: YouTubeService = Depends(get_youtube_service),
):
    return await youtube.fetch_metadata(url)


@router.get("/books", response_model=BookSearchResponse, summary="Search Google Books")
async def lookup_books(
    q: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_active_user),
    catalog: BookCatalogService = Depends(get_book_catalog_service),
):
    """
    ``id`` fetches one volume directly. Otherwise ``q`` is searched; it may
    also be a Google Books URL or a bare volume ID.
    """
    if id:
        return BookSearchResponse(results=await catalog.get(id))
    return BookSearchResponse(results=await catalog.search(q))
