"""
Anichin Plugin - Source adapter for anichin.watch

Chinese animation (donghua) with Indonesian subtitles. All pages are
static; episode mirrors are decoded from base64 dropdown options.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from otakuhub.core.models import (
    CatalogItem,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    WeeklySchedule,
)
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.streams import StreamResolver

from .parser import AnichinParser, SOURCE


logger = logging.getLogger(__name__)


plugin_metadata = PluginMetadata(
    name="Anichin",
    version="1.0.0",
    description="Donghua series with Indonesian subtitles and a weekly schedule",
    website="https://anichin.watch",
    content_type=ContentType.SERIES,
    rate_limit=1.0,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class AnichinPlugin(SourcePlugin):
    """Anichin donghua adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = AnichinParser(base_url=self.base_url)
        self.resolver = StreamResolver(SOURCE)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            path = "/" if page <= 1 else f"/page/{page}/"
            return self.parser.parse_latest(await self.fetcher.get(path))

        return await self._paged("latest", [page], load)

    async def list_ongoing(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(f"/donghua/?status=ongoing&page={page}")
            return self.parser.parse_status_listing(html, "Ongoing")

        return await self._paged("ongoing", [page], load)

    async def list_completed(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(f"/donghua/?status=completed&page={page}")
            return self.parser.parse_status_listing(html, "Completed")

        return await self._paged("completed", [page], load)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_search(await self.fetcher.get(f"/page/{page}/?s={quote_plus(query)}"))

        return await self._paged("search", [query, page], load)

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_genre(await self.fetcher.get(f"/genres/{genre}/page/{page}/"))

        return await self._paged("genre", [genre, page], load)

    async def list_popular(self, page: int = 1) -> PagedResult[CatalogItem]:
        """Popular series from the home page sidebar; a single page."""
        if page > 1:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_popular(await self.fetcher.get("/"))

        return await self._paged("popular", [], load)

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        async def load() -> ContentDetail:
            return self.parser.parse_detail(await self.fetcher.get(f"/donghua/{slug}/"), slug)

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        async def load() -> EpisodeDetail:
            doc = await self.get_document(f"/{unit_slug}/")
            servers = await self.resolver.resolve(doc)
            return self.parser.parse_episode(doc, unit_slug, servers)

        return await self._cached("episode", [unit_slug], EpisodeDetail, load, None)

    async def get_schedule(self) -> WeeklySchedule:
        async def load() -> WeeklySchedule:
            return self.parser.parse_schedule(await self.fetcher.get("/schedule/"))

        return await self._cached("schedule", [], WeeklySchedule, load, WeeklySchedule())


# Export plugin class and metadata
__all__ = ["AnichinPlugin", "plugin_metadata", "default_config"]
