"""Business logic services."""

from kbase.services.account import AccountService, get_account_service
from kbase.services.books import BookCatalogService, get_book_catalog_service
from kbase.services.content_repository import ContentRepository, get_content_repository
from kbase.services.lists import ListService, get_list_service
from kbase.services.preferences import PreferencesService, get_preferences_service
from kbase.services.tags import TagService, get_tag_service
from kbase.services.youtube import YouTubeService, get_youtube_service

__all__ = [
    "AccountService",
    "get_account_service",
    "BookCatalogService",
    "get_book_catalog_service",
    "ContentRepository",
    "get_content_repository",
    "ListService",
    "get_list_service",
    "PreferencesService",
    "get_preferences_service",
    "TagService",
    "get_tag_service",
    "YouTubeService",
    "get_youtube_service",
]
