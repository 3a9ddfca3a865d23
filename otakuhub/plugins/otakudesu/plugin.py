"""
Otakudesu Plugin - Source adapter for otakudesu.best

Listings, search and series detail are static pages. Episode pages build
their mirror list client-side, so streams are resolved by rendering the page
and clicking each mirror tab.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.streams import StreamResolver

from .parser import OtakudesuParser, SOURCE


logger = logging.getLogger(__name__)


plugin_metadata = PluginMetadata(
    name="Otakudesu",
    version="1.0.0",
    description="Indonesian anime series, subtitled episodes",
    website="https://otakudesu.best",
    content_type=ContentType.SERIES,
    rate_limit=1.0,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class OtakudesuPlugin(SourcePlugin):
    """Otakudesu anime adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = OtakudesuParser(base_url=self.base_url)
        self.resolver = StreamResolver(
            SOURCE,
            interaction_delay=self.render_settings.interaction_delay,
        )

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    @staticmethod
    def _page_path(prefix: str, page: int) -> str:
        return prefix if page <= 1 else f"{prefix}page/{page}/"

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_latest(await self.fetcher.get(self._page_path("/", page)))

        return await self._paged("latest", [page], load)

    async def list_completed(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_completed(
                await self.fetcher.get(self._page_path("/complete-anime/", page))
            )

        return await self._paged("complete", [page], load)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(f"/?s={quote_plus(query)}&post_type=anime")
            return self.parser.parse_search(html)

        return await self._paged("search", [query, page], load)

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_genre(
                await self.fetcher.get(self._page_path(f"/genres/{genre}/", page))
            )

        return await self._paged("genre", [genre, page], load)

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        async def load() -> ContentDetail:
            return self.parser.parse_detail(await self.fetcher.get(f"/anime/{slug}/"), slug)

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        """
        Render an episode page and collect every mirror.

        Returns:
            Episode with servers (possibly none), or None if the page cannot
            be rendered
        """
        async def load() -> EpisodeDetail:
            async with self.create_renderer() as driver:
                await driver.navigate(self.url(f"/episode/{unit_slug}/"))
                html = await driver.content()
                servers = await self.resolver.resolve(self.parse(html), driver)
            return self.parser.parse_episode(html, unit_slug, servers)

        return await self._cached("episode", [unit_slug], EpisodeDetail, load, None)


# Export plugin class and metadata
__all__ = ["OtakudesuPlugin", "plugin_metadata", "default_config"]
