"""
Content Models

The content aggregate: one saved item, its type-specific metadata, its tags
and its list memberships.

Models Included:
----------------
1. Content - a saved video, article or book
2. VideoMetadata / ArticleMetadata / BookMetadata - at most one per content
   item, always in the table matching ``Content.type``
3. Tag - per-user label, names normalized (trimmed, lowercased)
4. ContentTag - content <-> tag association
5. UserList - user-defined collection ("lists" table)
6. ContentList - content <-> list association
7. ContentType, ContentStatus (Enums)

Relationship Map:
-----------------
users 1──* content 1──0..1 {video,article,book}_metadata
                   1──* content_tags *──1 tags
                   1──* content_lists *──1 lists

Writes to the association tables always go through ContentTag / ContentList
rows; ``Content.tags`` and ``Content.lists`` are read-only views over them.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kbase.db.base import (
    Base,
    JSONType,
    String7,
    String20,
    String50,
    String100,
    String255,
    String500,
    String2048,
    TimestampedModel,
)
from kbase.models.user import enum_column

if TYPE_CHECKING:
    from kbase.models.user import User


# ================================
# Enums
# ================================

class ContentType(str, enum.Enum):
    """Kind of saved item. Decides which metadata table applies."""

    VIDEO = "video"
    ARTICLE = "article"
    BOOK = "book"

    def __str__(self) -> str:
        return self.value


class ContentStatus(str, enum.Enum):
    """
    Consumption status.

    PENDING -> COMPLETED sets ``Content.completed_at``,
    COMPLETED -> PENDING clears it.
    """

    PENDING = "pending"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


# ================================
# Content
# ================================

class Content(TimestampedModel):
    """A saved video, article or book."""

    __tablename__ = "content"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner",
    )

    type: Mapped[ContentType] = mapped_column(
        enum_column(ContentType, "content_type"),
        nullable=False,
        index=True,
    )

    status: Mapped[ContentStatus] = mapped_column(
        enum_column(ContentStatus, "content_status"),
        nullable=False,
        default=ContentStatus.PENDING,
        index=True,
    )

    title: Mapped[str] = mapped_column(String500, nullable=False)

    url: Mapped[str | None] = mapped_column(
        String2048,
        nullable=True,
        comment="Required for videos",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    summary: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Free text; may reference mm:ss timestamps",
    )

    related_links: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="List of {title, url} objects",
    )

    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    personal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ================================
    # Relationships
    # ================================
    # selectin keeps every relation loaded eagerly; AsyncSession cannot
    # lazy-load on attribute access.
    # The owner back-reference is never loaded and raises if touched.

    user: Mapped["User"] = relationship("User", back_populates="contents", lazy="raise")

    video_metadata: Mapped[Optional["VideoMetadata"]] = relationship(
        "VideoMetadata",
        uselist=False,
        passive_deletes=True,
        lazy="selectin",
    )

    article_metadata: Mapped[Optional["ArticleMetadata"]] = relationship(
        "ArticleMetadata",
        uselist=False,
        passive_deletes=True,
        lazy="selectin",
    )

    book_metadata: Mapped[Optional["BookMetadata"]] = relationship(
        "BookMetadata",
        uselist=False,
        passive_deletes=True,
        lazy="selectin",
    )

    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary="content_tags",
        viewonly=True,
        lazy="selectin",
        order_by="Tag.name",
    )

    lists: Mapped[list["UserList"]] = relationship(
        "UserList",
        secondary="content_lists",
        viewonly=True,
        lazy="selectin",
        order_by="UserList.name",
    )

    @property
    def metadata_record(self) -> Optional["ContentMetadataMixin"]:
        """The metadata row for this item's type, if any."""
        return {
            ContentType.VIDEO: self.video_metadata,
            ContentType.ARTICLE: self.article_metadata,
            ContentType.BOOK: self.book_metadata,
        }[ContentType(self.type)]

    def __repr__(self) -> str:
        return f"Content(id={self.id}, type={self.type}, title={self.title[:30]!r})"


# ================================
# Type-specific Metadata
# ================================

class ContentMetadataMixin:
    """
    Shared shape of the three metadata tables.

    No timestamps: metadata rows are replaced wholesale together with their
    content item, and the export reproduces them minus ``id``/``content_id``.
    """

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    content_id: Mapped[int] = mapped_column(
        ForeignKey("content.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Columns a client may set, in export order
    FIELDS = ()

    def dict(self, exclude: tuple[str, ...] = ()) -> dict:
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
            if column.name not in exclude
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(content_id={self.content_id})"


class VideoMetadata(ContentMetadataMixin, Base):
    __tablename__ = "video_metadata"

    channel_name: Mapped[str | None] = mapped_column(String255, nullable=True)
    channel_url: Mapped[str | None] = mapped_column(String2048, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String2048, nullable=True)
    video_id: Mapped[str | None] = mapped_column(String50, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    FIELDS = (
        "channel_name",
        "channel_url",
        "duration_seconds",
        "thumbnail_url",
        "video_id",
        "published_at",
    )


class ArticleMetadata(ContentMetadataMixin, Base):
    __tablename__ = "article_metadata"

    author: Mapped[str | None] = mapped_column(String255, nullable=True)
    site_name: Mapped[str | None] = mapped_column(String255, nullable=True)
    site_favicon: Mapped[str | None] = mapped_column(String2048, nullable=True)
    reading_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    FIELDS = (
        "author",
        "site_name",
        "site_favicon",
        "reading_time_minutes",
        "published_at",
    )


class BookMetadata(ContentMetadataMixin, Base):
    __tablename__ = "book_metadata"

    author: Mapped[str | None] = mapped_column(String255, nullable=True)
    publisher: Mapped[str | None] = mapped_column(String255, nullable=True)
    isbn: Mapped[str | None] = mapped_column(String20, nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(String2048, nullable=True)
    published_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    FIELDS = (
        "author",
        "publisher",
        "isbn",
        "page_count",
        "cover_image_url",
        "published_year",
    )


METADATA_MODELS: dict[ContentType, type[ContentMetadataMixin]] = {
    ContentType.VIDEO: VideoMetadata,
    ContentType.ARTICLE: ArticleMetadata,
    ContentType.BOOK: BookMetadata,
}


# ================================
# Tags
# ================================

class Tag(TimestampedModel):
    """
    Per-user label.

    Names are stored normalized, so "AI", " ai " and "ai" are one tag.
    Tags outlive the content they were attached to.
    """

    __tablename__ = "tags"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String50, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="tags", lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_id_name"),
    )

    def __repr__(self) -> str:
        return f"Tag(id={self.id}, name={self.name})"


class ContentTag(TimestampedModel):
    __tablename__ = "content_tags"

    content_id: Mapped[int] = mapped_column(
        ForeignKey("content.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("content_id", "tag_id", name="uq_content_tags_content_id_tag_id"),
    )


# ================================
# Lists
# ================================

class UserList(TimestampedModel):
    """
    A user-defined collection of content.

    Named UserList on the Python side to stay clear of ``typing.List``;
    the table is ``lists``. Deleting a list removes memberships only.
    """

    __tablename__ = "lists"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String100, nullable=False)
    description: Mapped[str | None] = mapped_column(String500, nullable=True)
    color: Mapped[str] = mapped_column(String7, nullable=False, default="#6366f1")
    icon: Mapped[str] = mapped_column(String50, nullable=False, default="folder")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped["User"] = relationship("User", back_populates="lists", lazy="raise")

    def __repr__(self) -> str:
        return f"UserList(id={self.id}, name={self.name})"


class ContentList(TimestampedModel):
    __tablename__ = "content_lists"

    content_id: Mapped[int] = mapped_column(
        ForeignKey("content.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    list_id: Mapped[int] = mapped_column(
        ForeignKey("lists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("content_id", "list_id", name="uq_content_lists_content_id_list_id"),
    )
