"""
YouTube metadata lookup.

Pre-fills the "new video" form from a pasted URL:

- title, channel and thumbnail come from the noembed oEmbed proxy, which
  needs no API key
- the description is scraped from the watch page (best effort)
- the duration is only available through the YouTube Data API and is
  looked up when YOUTUBE_API_KEY is configured

Everything here is advisory. A failed lookup never blocks saving content.
"""

import asyncio
import json
import logging
import re
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import isodate
import requests
from bs4 import BeautifulSoup
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from kbase.core.config import settings
from kbase.core.errors import InvalidLookupQueryError, UpstreamLookupError

logger = logging.getLogger(__name__)


class YouTubeLookupError(UpstreamLookupError):
    """noembed (or YouTube) could not be reached or answered with an error."""

    code = "video_lookup_failed"
    message = "Could not fetch video metadata"


class InvalidVideoUrlError(InvalidLookupQueryError):
    code = "invalid_video_url"
    message = "Invalid YouTube URL"


class VideoNotFoundError(InvalidLookupQueryError):
    """noembed answered, but with an error for this video (private, removed, ...)."""

    code = "video_not_found"


class YouTubeService:
    """
    Service for looking up a single YouTube video.

    Example:
        >>> youtube = YouTubeService()
        >>> data = await youtube.fetch_metadata("https://youtu.be/dQw4w9WgXcQ")
        >>> data["video_id"]
        'dQw4w9WgXcQ'
    """

    # YouTube serves the full watch page (with the player JSON) to crawlers
    USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
    DESCRIPTION_MAX_LENGTH = 500

    VIDEO_ID_PATTERNS = (
        re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)([^&\n?#]+)"),
        re.compile(r"youtube\.com/shorts/([^&\n?#]+)"),
        re.compile(r"youtube\.com/live/([^&\n?#]+)"),
    )
    PLAYER_RESPONSE_PATTERN = re.compile(r"var ytInitialPlayerResponse\s*=\s*(\{[\s\S]+?\});")

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        """
        Args:
            api_key: YouTube Data API key, defaults to settings.YOUTUBE_API_KEY.
                Without one, durations are simply not looked up.
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key if api_key is not None else settings.YOUTUBE_API_KEY
        self.timeout = timeout or settings.METADATA_REQUEST_TIMEOUT
        self._youtube = None

    # ========================================
    # URL Handling
    # ========================================

    @classmethod
    def extract_video_id_from_url(cls, url: str) -> Optional[str]:
        """
        Extract the video ID from a YouTube URL.

        Supports:
        - https://www.youtube.com/watch?v=VIDEO_ID (v anywhere in the query)
        - https://youtu.be/VIDEO_ID
        - https://www.youtube.com/embed/VIDEO_ID
        - https://www.youtube.com/v/VIDEO_ID
        - https://www.youtube.com/shorts/VIDEO_ID
        - https://www.youtube.com/live/VIDEO_ID

        Returns:
            Video ID if found, None otherwise
        """
        if not url:
            return None

        for pattern in cls.VIDEO_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)

        # watch?feature=share&v=VIDEO_ID
        parsed = urlparse(url)
        if "youtube.com" in parsed.netloc and parsed.path == "/watch":
            query_params = parse_qs(parsed.query)
            if query_params.get("v"):
                return query_params["v"][0]

        return None

    @staticmethod
    def canonical_url(video_id: str) -> str:
        """noembed only understands plain watch URLs."""
        return f"https://www.youtube.com/watch?v={video_id}"

    @staticmethod
    def default_thumbnail(video_id: str) -> str:
        return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"

    @staticmethod
    def validate_video_id(video_id: str) -> bool:
        """Video IDs are 11 characters of [a-zA-Z0-9_-]."""
        return bool(video_id) and bool(re.match(r"^[a-zA-Z0-9_-]{11}$", video_id))

    @staticmethod
    def format_duration(iso_duration: str) -> Tuple[int, str]:
        """
        Convert ISO 8601 duration to seconds and human-readable format.

        Example:
            >>> YouTubeService.format_duration("PT15M33S")
            (933, "15:33")
            >>> YouTubeService.format_duration("PT1H2M30S")
            (3750, "1:02:30")
        """
        try:
            total_seconds = int(isodate.parse_duration(iso_duration).total_seconds())
        except (isodate.ISO8601Error, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse duration {iso_duration}: {e}")
            return 0, "0:00"

        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours > 0:
            return total_seconds, f"{hours}:{minutes:02d}:{seconds:02d}"
        return total_seconds, f"{minutes}:{seconds:02d}"

    # ========================================
    # Blocking Fetchers (run in worker threads)
    # ========================================

    def fetch_oembed(self, canonical_url: str) -> Dict:
        """
        Title, channel and thumbnail from noembed.

        Raises:
            YouTubeLookupError: network failure or non-2xx answer
            VideoNotFoundError: noembed reported an error for this video
        """
        try:
            response = requests.get(
                settings.NOEMBED_URL,
                params={"url": canonical_url},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"noembed lookup failed for {canonical_url}: {e}")
            raise YouTubeLookupError()

        if data.get("error"):
            raise VideoNotFoundError(str(data["error"]))
        return data

    def fetch_description(self, video_id: str) -> Optional[str]:
        """
        Scrape the description from the watch page.

        The player JSON embedded in the page has the full description; the
        ``<meta name="description">`` tag is the fallback. Returns None on
        any failure.
        """
        try:
            response = requests.get(
                self.canonical_url(video_id),
                headers={"User-Agent": self.USER_AGENT},
                timeout=self.timeout,
            )
            if not response.ok:
                return None
            html = response.text
        except requests.RequestException as e:
            logger.info(f"Could not fetch watch page for {video_id}: {e}")
            return None

        match = self.PLAYER_RESPONSE_PATTERN.search(html)
        if match:
            try:
                player = json.loads(match.group(1))
            except ValueError:
                player = {}
            description = (player.get("videoDetails") or {}).get("shortDescription")
            if description:
                if len(description) > self.DESCRIPTION_MAX_LENGTH:
                    return description[:self.DESCRIPTION_MAX_LENGTH] + "..."
                return description

        meta = BeautifulSoup(html, "lxml").find("meta", attrs={"name": "description"})
        if meta and meta.get("content"):
            return meta["content"]
        return None

    def fetch_duration_minutes(self, video_id: str) -> Optional[int]:
        """
        Duration through the Data API, rounded to minutes.

        None without an API key, and None when the lookup fails in any way.
        """
        if not self.api_key:
            return None

        try:
            if self._youtube is None:
                self._youtube = build(
                    "youtube",
                    "v3",
                    developerKey=self.api_key,
                    cache_discovery=False,
                )
            response = self._youtube.videos().list(
                part="contentDetails",
                id=video_id,
            ).execute()
        except HttpError as e:
            if e.resp.status == 403:
                logger.warning("YouTube API quota exceeded, skipping duration lookup")
            else:
                logger.warning(f"YouTube API error for {video_id}: {e}")
            return None
        except Exception as e:
            logger.warning(f"YouTube duration lookup failed for {video_id}: {e}")
            return None

        items = response.get("items") or []
        if not items:
            return None

        content_details = items[0].get("contentDetails") or {}
        total_seconds, _ = self.format_duration(content_details.get("duration", ""))
        if total_seconds <= 0:
            return None
        return max(1, round(total_seconds / 60))

    # ========================================
    # Lookup
    # ========================================

    async def fetch_metadata(self, url: str) -> Dict:
        """
        Everything we can learn about a video from its URL.

        Raises:
            InvalidVideoUrlError: not a recognizable YouTube URL
            VideoNotFoundError / YouTubeLookupError: oEmbed lookup failed
        """
        video_id = self.extract_video_id_from_url(url)
        if not video_id:
            raise InvalidVideoUrlError()

        canonical = self.canonical_url(video_id)
        oembed, description, duration_minutes = await asyncio.gather(
            asyncio.to_thread(self.fetch_oembed, canonical),
            asyncio.to_thread(self.fetch_description, video_id),
            asyncio.to_thread(self.fetch_duration_minutes, video_id),
        )

        return {
            "title": oembed.get("title") or None,
            "description": description,
            "channel_name": oembed.get("author_name") or None,
            "channel_url": oembed.get("author_url") or None,
            "thumbnail_url": oembed.get("thumbnail_url") or self.default_thumbnail(video_id),
            "video_id": video_id,
            "url": canonical,
            "duration_minutes": duration_minutes,
        }


def get_youtube_service() -> YouTubeService:
    return YouTubeService()
