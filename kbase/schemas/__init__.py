"""Pydantic schemas for API requests and responses."""

from kbase.schemas.account import AccountDeletionResponse, AccountStats, TagWithCount
from kbase.schemas.auth import GoogleSignInRequest, Token, UserRead
from kbase.schemas.content import (
    ContentCreate,
    ContentFilterParams,
    ContentMetadataInput,
    ContentPage,
    ContentRead,
    ContentUpdate,
    DeleteResponse,
    Pagination,
    RelatedLink,
)
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
from kbase.schemas.metadata import BookLookup, BookSearchResponse, VideoLookup
from kbase.schemas.preferences import PreferencesRead, PreferencesUpdate

__all__ = [
    # Content
    "ContentCreate",
    "ContentUpdate",
    "ContentFilterParams",
    "ContentMetadataInput",
    "ContentRead",
    "ContentPage",
    "Pagination",
    "RelatedLink",
    "DeleteResponse",
    # Lists
    "ListCreate",
    "ListUpdate",
    "ListRead",
    "ListWithCount",
    "ListDetail",
    "AddContentsRequest",
    "AddContentsResponse",
    "RemoveContentRequest",
    "RemoveContentResponse",
    # Preferences
    "PreferencesRead",
    "PreferencesUpdate",
    # Account
    "AccountStats",
    "TagWithCount",
    "AccountDeletionResponse",
    # Auth
    "GoogleSignInRequest",
    "Token",
    "UserRead",
    # Metadata lookups
    "VideoLookup",
    "BookLookup",
    "BookSearchResponse",
]
