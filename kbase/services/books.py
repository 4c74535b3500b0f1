"""
Book catalog lookup (Google Books).

Searches the public Google Books volumes API and normalizes each volume to
the fields of the book form. No API key is needed for these endpoints.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from kbase.core.config import settings
from kbase.core.errors import InvalidLookupQueryError, NotFoundError, UpstreamLookupError

logger = logging.getLogger(__name__)


class BookLookupError(UpstreamLookupError):
    code = "book_lookup_failed"
    message = "Error searching Google Books"


class BookNotFoundError(NotFoundError):
    code = "book_not_found"
    message = "Book not found"


class InvalidBookQueryError(InvalidLookupQueryError):
    code = "invalid_book_query"
    message = "A search term of at least 2 characters is required"


MIN_QUERY_LENGTH = 2
MAX_RESULTS = 10

BOOK_ID_PATTERNS = (
    re.compile(r"books\.google\.[^/]+/books(?:/about)?[^?]*\?.*id=([a-zA-Z0-9_-]+)"),
    re.compile(r"^([a-zA-Z0-9_-]{12})$"),
)


def extract_volume_id(query: str) -> Optional[str]:
    """
    Volume ID from a Google Books URL or a bare 12 character ID.

    Supports:
    - books.google.com/books?id=XXXXX
    - books.google.com/books/about/Title.html?id=XXXXX
    """
    for pattern in BOOK_ID_PATTERNS:
        match = pattern.search(query)
        if match:
            return match.group(1)
    return None


def clean_description(html: Optional[str]) -> Optional[str]:
    """Google Books descriptions are HTML; keep paragraphs and line breaks, drop tags."""
    if not html:
        return None

    text = re.sub(r"</p>\s*<p>", "\n\n", html, flags=re.IGNORECASE)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = BeautifulSoup(text, "lxml").get_text()
    text = text.replace("\xa0", " ")
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return text or None


def improve_image_url(url: Optional[str]) -> Optional[str]:
    """Larger cover without the page-curl effect, over https."""
    if not url:
        return None
    return (
        url.replace("zoom=1", "zoom=0", 1)
        .replace("&edge=curl", "", 1)
        .replace("http://", "https://", 1)
    )


def normalize_volume(volume: Dict) -> Dict:
    info = volume.get("volumeInfo") or {}

    identifiers = {
        identifier.get("type"): identifier.get("identifier")
        for identifier in info.get("industryIdentifiers") or []
    }
    isbn = identifiers.get("ISBN_13") or identifiers.get("ISBN_10") or None

    published_year = None
    year_match = re.search(r"(\d{4})", info.get("publishedDate") or "")
    if year_match:
        published_year = int(year_match.group(1))

    return {
        "id": volume["id"],
        "title": info.get("title") or "Untitled",
        "author": ", ".join(info.get("authors") or []) or None,
        "publisher": info.get("publisher") or None,
        "description": clean_description(info.get("description")),
        "isbn": isbn,
        "page_count": info.get("pageCount") or None,
        "published_year": published_year,
        "cover_image_url": improve_image_url((info.get("imageLinks") or {}).get("thumbnail")),
    }


class BookCatalogService:
    """
    Service for Google Books searches.

    Example:
        >>> catalog = BookCatalogService()
        >>> results = await catalog.search("dune herbert")
        >>> results[0]["title"]
        'Dune'
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = (base_url or settings.GOOGLE_BOOKS_API_URL).rstrip("/")
        self.timeout = timeout or settings.METADATA_REQUEST_TIMEOUT

    def fetch_volume(self, volume_id: str) -> Optional[Dict]:
        """One volume by ID, or None if Google Books does not return it."""
        try:
            response = requests.get(f"{self.base_url}/volumes/{volume_id}", timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Google Books volume lookup failed for {volume_id}: {e}")
            return None
        if not response.ok:
            return None
        return normalize_volume(response.json())

    def search_volumes(self, query: str) -> List[Dict]:
        try:
            response = requests.get(
                f"{self.base_url}/volumes",
                params={"q": query, "maxResults": MAX_RESULTS, "printType": "books"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Google Books search failed for '{query}': {e}")
            raise BookLookupError()

        return [normalize_volume(volume) for volume in data.get("items") or []]

    async def get(self, volume_id: str) -> List[Dict]:
        """
        Raises:
            BookNotFoundError: the volume does not exist
        """
        book = await asyncio.to_thread(self.fetch_volume, volume_id)
        if book is None:
            raise BookNotFoundError()
        return [book]

    async def search(self, query: Optional[str]) -> List[Dict]:
        """
        Search by free text, a Google Books URL or a bare volume ID.

        A URL or ID is looked up directly first; if that fails the input is
        searched as plain text.

        Raises:
            InvalidBookQueryError: query shorter than 2 characters
            BookLookupError: Google Books search failed
        """
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise InvalidBookQueryError()

        volume_id = extract_volume_id(query)
        if volume_id:
            book = await asyncio.to_thread(self.fetch_volume, volume_id)
            if book is not None:
                return [book]

        return await asyncio.to_thread(self.search_volumes, query)


def get_book_catalog_service() -> BookCatalogService:
    return BookCatalogService()
