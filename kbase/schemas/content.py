"""
Pydantic schemas for content endpoints.

Request schemas normalize what the forms send: empty strings become None,
NaN from empty numeric inputs becomes None, optional URLs accept "".

Create vs Update:
-----------------
- ContentCreate requires ``type`` and ``title`` and, for videos, a URL.
- ContentUpdate is fully partial: only the fields present in the request
  body are validated and applied (``model_fields_set``). The video URL
  rule is not re-checked on update.
"""

import math
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    StringConstraints,
    TypeAdapter,
    ValidationInfo,
    field_validator,
)

from kbase.models.content import ContentStatus, ContentType

_http_url = TypeAdapter(HttpUrl)

TagName = Annotated[str, StringConstraints(max_length=50)]


# ========================================
# Normalizers
# ========================================

def empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


def nan_to_none(value: Any) -> Any:
    """Empty numeric inputs arrive as NaN (or "" / "NaN" from form posts)."""
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and value.strip() in ("", "NaN", "nan"):
        return None
    return value


def check_url(value: Optional[str]) -> Optional[str]:
    """Validate as http(s) URL but keep the string exactly as sent."""
    if value is None:
        return None
    _http_url.validate_python(value)
    return value


def parse_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise ValueError("Invalid date")
    return value


# ========================================
# Nested Schemas
# ========================================

class RelatedLink(BaseModel):
    """A titled link shown next to a content item."""

    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., examples=["https://example.com/notes"])

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return check_url(v)


class ContentMetadataInput(BaseModel):
    """
    Type-specific metadata as entered by the user.

    Only the fields belonging to the item's type are persisted; the rest are
    ignored. Videos carry ``duration_minutes`` here and it is stored as
    ``duration_seconds``.
    """

    # Video
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    thumbnail_url: Optional[str] = None
    video_id: Optional[str] = Field(None, max_length=50)

    # Article
    author: Optional[str] = Field(None, max_length=255)
    site_name: Optional[str] = Field(None, max_length=255)
    site_favicon: Optional[str] = None
    reading_time_minutes: Optional[int] = Field(None, gt=0)

    # Book
    publisher: Optional[str] = Field(None, max_length=255)
    isbn: Optional[str] = Field(None, max_length=20)
    page_count: Optional[int] = Field(None, gt=0)
    cover_image_url: Optional[str] = None
    published_year: Optional[int] = None

    # Video / article
    published_at: Optional[datetime] = None

    @field_validator(
        "channel_name", "video_id", "author", "site_name", "publisher", "isbn",
        mode="before",
    )
    @classmethod
    def blank_strings(cls, v: Any) -> Any:
        return empty_to_none(v)

    @field_validator(
        "channel_url", "thumbnail_url", "site_favicon", "cover_image_url",
        mode="before",
    )
    @classmethod
    def optional_urls(cls, v: Any) -> Any:
        return empty_to_none(v)

    @field_validator("channel_url", "thumbnail_url", "site_favicon", "cover_image_url")
    @classmethod
    def validate_urls(cls, v: Optional[str]) -> Optional[str]:
        return check_url(v)

    @field_validator(
        "duration_minutes", "reading_time_minutes", "page_count", "published_year",
        mode="before",
    )
    @classmethod
    def numeric_nan(cls, v: Any) -> Any:
        return nan_to_none(v)

    @field_validator("published_at", mode="before")
    @classmethod
    def published_at_string(cls, v: Any) -> Any:
        return parse_timestamp(empty_to_none(v))


# ========================================
# Request Schemas
# ========================================

class ContentFields(BaseModel):
    """Field rules shared by create and update."""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("url", "description", "summary", "personal_notes", mode="before", check_fields=False)
    @classmethod
    def blank_strings(cls, v: Any) -> Any:
        return empty_to_none(v)

    @field_validator("url", check_fields=False)
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        return check_url(v)


class ContentCreate(ContentFields):
    """
    Request schema for saving a new content item.

    Example request:
        {
            "type": "video",
            "title": "Intro to Rust",
            "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "tags": ["Rust", "talks"],
            "listIds": [3],
            "metadata": {"channel_name": "RustConf", "duration_minutes": 42}
        }
    """

    type: ContentType
    status: ContentStatus = ContentStatus.PENDING
    title: str = Field(..., min_length=1, max_length=500)
    # validate_default so the video rule below also runs when url is omitted
    url: Optional[str] = Field(None, validate_default=True)
    description: Optional[str] = Field(None, max_length=5000)
    summary: Optional[str] = Field(None, max_length=10000)
    related_links: List[RelatedLink] = Field(default_factory=list, max_length=20)
    rating: Optional[int] = Field(None, ge=1, le=5)
    personal_notes: Optional[str] = Field(None, max_length=10000)
    list_ids: Optional[List[int]] = Field(None, alias="listIds")
    tags: Optional[List[TagName]] = Field(None, max_length=10)
    metadata: Optional[ContentMetadataInput] = None

    @field_validator("url")
    @classmethod
    def url_required_for_videos(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        # Only checked once ``type`` itself validated
        if info.data.get("type") == ContentType.VIDEO and (v is None or not v.strip()):
            raise ValueError("URL is required for videos")
        return v


class ContentUpdate(ContentFields):
    """
    Request schema for a partial update.

    Fields left out of the body are untouched. ``tags`` present (even as
    ``[]``) replaces the item's tags; ``listIds`` present replaces its list
    memberships.
    """

    type: Optional[ContentType] = None
    status: Optional[ContentStatus] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    url: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    summary: Optional[str] = Field(None, max_length=10000)
    related_links: Optional[List[RelatedLink]] = Field(None, max_length=20)
    rating: Optional[int] = Field(None, ge=1, le=5)
    personal_notes: Optional[str] = Field(None, max_length=10000)
    list_ids: Optional[List[int]] = Field(None, alias="listIds")
    tags: Optional[List[TagName]] = Field(None, max_length=10)
    metadata: Optional[ContentMetadataInput] = None

    @field_validator("type", "status", "title", "related_links")
    @classmethod
    def not_null(cls, v: Any, info: ValidationInfo) -> Any:
        # Reached only when the field was sent explicitly
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ContentFilterParams(BaseModel):
    """Query parameters of GET /content."""

    type: Optional[ContentType] = None
    status: Optional[ContentStatus] = None
    list_id: Optional[int] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: str = Field(
        "created_at",
        pattern="^(created_at|updated_at|completed_at|title|rating)$",
    )
    sort_order: str = Field("desc", pattern="^(asc|desc)$")


# ========================================
# Response Schemas
# ========================================

class TagRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class ListRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str


class VideoMetadataRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    thumbnail_url: Optional[str] = None
    video_id: Optional[str] = None
    published_at: Optional[datetime] = None


class ArticleMetadataRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    author: Optional[str] = None
    site_name: Optional[str] = None
    site_favicon: Optional[str] = None
    reading_time_minutes: Optional[int] = None
    published_at: Optional[datetime] = None


class BookMetadataRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    author: Optional[str] = None
    publisher: Optional[str] = None
    isbn: Optional[str] = None
    page_count: Optional[int] = None
    cover_image_url: Optional[str] = None
    published_year: Optional[int] = None


class ContentRead(BaseModel):
    """A content item with its metadata, tags and lists."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: ContentType
    status: ContentStatus
    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    related_links: List[RelatedLink] = []
    rating: Optional[int] = None
    personal_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    video_metadata: Optional[VideoMetadataRead] = None
    article_metadata: Optional[ArticleMetadataRead] = None
    book_metadata: Optional[BookMetadataRead] = None
    tags: List[TagRef] = []
    lists: List[ListRef] = []


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., serialization_alias="totalPages")


class ContentPage(BaseModel):
    """Paginated listing: ``{"data": [...], "pagination": {...}}``."""

    data: List[ContentRead]
    pagination: Pagination


class DeleteResponse(BaseModel):
    success: bool = True
