"""
Subnime Plugin - Source adapter for subnime.com

Listings are static. Series pages split long episode lists into ranges
behind a dropdown and episode pages build their server buttons client-side,
so both are rendered. Wrapper players are unwrapped to the frame they embed.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from otakuhub.core.exceptions import FetchFailure
from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult, StreamServer
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.streams import ServerCollector

from .parser import EPISODE_TAB, RANGE_SELECT, SOURCE, SubnimeParser, is_wrapper


logger = logging.getLogger(__name__)


plugin_metadata = PluginMetadata(
    name="Subnime",
    version="1.0.0",
    description="Indonesian anime series with ranged episode lists",
    website="https://subnime.com",
    content_type=ContentType.SERIES,
    rate_limit=1.0,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class SubnimePlugin(SourcePlugin):
    """Subnime anime adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = SubnimeParser(base_url=self.base_url)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    async def _listing(self, operation: str, path: str, args: List[Any]) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_listing(await self.fetcher.get(path))

        return await self._paged(operation, args, load)

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("latest", "/" if page <= 1 else f"/?page={page}", [page])

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()
        return await self._listing("search", f"/search?q={quote_plus(query)}&page={page}", [query, page])

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("genre", f"/search?genre={quote_plus(genre)}&page={page}", [genre, page])

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        """
        Render a series page and walk every episode range.

        The episode tab is opened first; each option of the range dropdown
        then contributes one snapshot of the episode grid.
        """
        async def load() -> Optional[ContentDetail]:
            async with self.create_renderer() as driver:
                await driver.navigate(self.url(f"/anime/{slug}"))
                await driver.pause()
                if await driver.click_by_text(["episode"], EPISODE_TAB):
                    await driver.pause()

                snapshots = [await driver.content()]
                ranges = await driver.count(f"{RANGE_SELECT} option")
                for index in range(ranges):
                    if await driver.select_option(RANGE_SELECT, index):
                        await driver.pause()
                        snapshots.append(await driver.content())

            self.logger.debug(f"[{self.source}] {slug}: {len(snapshots)} episode snapshots")
            return self.parser.parse_detail(snapshots, slug)

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def _unwrap(self, url: str) -> str:
        """Player embedded by a wrapper page, or the wrapper itself."""
        try:
            inner = self.parser.inner_player(await self.fetcher.get(url))
        except FetchFailure as e:
            self.logger.debug(f"[{self.source}] wrapper {url} unavailable: {e}")
            return url
        return inner or url

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        """
        Render an episode page and collect its server buttons.

        Results without servers are not cached.
        """
        async def load() -> EpisodeDetail:
            html = await self.create_renderer().render(self.url(f"/{unit_slug}"), str)

            collector = ServerCollector(SOURCE)
            for name, url in self.parser.server_entries(html):
                collector.add(await self._unwrap(url) if is_wrapper(url) else url, name)

            servers: List[StreamServer] = collector.servers
            return self.parser.parse_episode(html, unit_slug, servers)

        return await self._cached(
            "episode", [unit_slug], EpisodeDetail, load, None,
            cache_if=lambda detail: bool(detail.servers),
        )


# Export plugin class and metadata
__all__ = ["SubnimePlugin", "plugin_metadata", "default_config"]
