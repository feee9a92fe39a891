import logging
from typing import Any

import httpx

from .config import (
    CMS_BASE_URL,
    DEFAULT_PAGE_SIZE,
    HTTP_TIMEOUT,
    QUOTE_POOL_SIZE,
    SEARCH_PAGE_SIZE,
)
from .models import Playlist, Quote, Sermon
from .normalizer import parse_playlists, parse_quotes, parse_sermon, parse_sermons

logger = logging.getLogger(__name__)


def has_more_pages(results: list, per_page: int) -> bool:
    """A page shorter than the page size is the last one."""
    return len(results) >= per_page


class CMSClient:
    """
    Async client for the WordPress REST API behind the forwarding proxy.

    Listing methods never raise: transport or parse failures are logged and
    come back as an empty list (or None for single lookups).
    """

    def __init__(self, base_url: str | None = None, timeout: float = HTTP_TIMEOUT):
        self.base_url = (base_url or CMS_BASE_URL).rstrip("/")
        self.timeout = timeout

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET a CMS endpoint and return decoded JSON. Raises on non-2xx."""
        url = f"{self.base_url}/{endpoint}"

        async with httpx.AsyncClient() as client:
            response = await client.get(url, params=params or {}, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

    async def fetch_sermons(
        self, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE, category_id: int | None = None
    ) -> list[Sermon]:
        params: dict[str, Any] = {"_embed": "", "page": page, "per_page": per_page}
        if category_id:
            params["categories"] = category_id
        try:
            return parse_sermons(await self._get("posts", params))
        except Exception as e:
            logger.error(f"Error fetching sermons: {e}")
            return []

    async def fetch_sermon_by_id(self, sermon_id: int) -> Sermon | None:
        try:
            return parse_sermon(await self._get(f"posts/{sermon_id}", {"_embed": ""}))
        except Exception as e:
            logger.error(f"Error fetching sermon {sermon_id}: {e}")
            return None

    async def search_sermons(self, query: str) -> list[Sermon]:
        params = {"_embed": "", "search": query, "per_page": SEARCH_PAGE_SIZE}
        try:
            return parse_sermons(await self._get("posts", params), decode=True)
        except Exception as e:
            logger.error(f"Error searching sermons: {e}")
            return []

    async def fetch_sermons_by_ids(self, ids: list[int]) -> list[Sermon]:
        """Resolve post ids (e.g. numeric bookmarks). Track-url ids are not posts and are skipped."""
        post_ids = [i for i in ids if isinstance(i, int) and not isinstance(i, bool)]
        if not post_ids:
            return []
        params = {"_embed": "", "include": ",".join(str(i) for i in post_ids)}
        try:
            return parse_sermons(await self._get("posts", params), decode=True)
        except Exception as e:
            logger.error(f"Error fetching sermons by ids: {e}")
            return []

    async def fetch_playlists(self, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> list[Playlist]:
        params = {"_embed": "", "page": page, "per_page": per_page}
        try:
            return parse_playlists(await self._get("sr_playlist", params))
        except Exception as e:
            logger.error(f"Error fetching playlists: {e}")
            return []

    async def fetch_quotes(self, page: int = 1, per_page: int = QUOTE_POOL_SIZE) -> list[Quote]:
        try:
            return parse_quotes(await self._get("quote", {"page": page, "per_page": per_page}))
        except Exception as e:
            logger.error(f"Error fetching quotes: {e}")
            return []
