"""
Database Models

Import models from this package so they are registered on ``Base.metadata``
before Alembic or ``create_all`` inspects it:

    from kbase.models import Content, Tag, UserList
"""

from kbase.models.content import (
    METADATA_MODELS,
    ArticleMetadata,
    BookMetadata,
    Content,
    ContentList,
    ContentStatus,
    ContentTag,
    ContentType,
    Tag,
    UserList,
    VideoMetadata,
)
from kbase.models.user import (
    AuthorizedUser,
    SortField,
    SortOrder,
    User,
    UserPreferences,
    UserRole,
    ViewMode,
)

__all__ = [
    # User models
    "User",
    "AuthorizedUser",
    "UserPreferences",
    # Content models
    "Content",
    "VideoMetadata",
    "ArticleMetadata",
    "BookMetadata",
    "METADATA_MODELS",
    "Tag",
    "ContentTag",
    "UserList",
    "ContentList",
    # Enums
    "ContentType",
    "ContentStatus",
    "UserRole",
    "ViewMode",
    "SortField",
    "SortOrder",
]
