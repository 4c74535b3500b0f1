"""
Pydantic schemas for metadata lookups (video oEmbed, book catalog).

These are suggestions used to pre-fill the content form; nothing here is
persisted directly.
"""

from typing import List, Optional

from pydantic import BaseModel


class VideoLookup(BaseModel):
    """Result of GET /metadata/youtube."""

    title: Optional[str] = None
    description: Optional[str] = None
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_id: str
    url: str
    duration_minutes: Optional[int] = None


class BookLookup(BaseModel):
    """One normalized Google Books volume."""

    id: str
    title: str
    author: Optional[str] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    page_count: Optional[int] = None
    published_year: Optional[int] = None
    cover_image_url: Optional[str] = None


class BookSearchResponse(BaseModel):
    results: List[BookLookup]
