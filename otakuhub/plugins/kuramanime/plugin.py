"""
Kuramanime Plugin - Source adapter for kuramanime

Listings and search are static. Series pages hide their episode list behind
a toggle and episode pages switch players through a server dropdown, so
both are rendered.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote_plus

from otakuhub.core.exceptions import RenderingFailure
from otakuhub.core.models import (
    DEFAULT_QUALITY,
    CatalogItem,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    StreamServer,
)
from otakuhub.core.renderer import RenderingDriver
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.streams import ServerCollector

from .parser import EPISODE_TOGGLE, SERVER_SELECT, SOURCE, KuramanimeParser, is_video_frame


logger = logging.getLogger(__name__)

MAX_SERVERS = 10


plugin_metadata = PluginMetadata(
    name="Kuramanime",
    version="1.0.0",
    description="Indonesian anime series with a multi-server player",
    website="https://v13.kuramanime.tel",
    content_type=ContentType.SERIES,
    rate_limit=0.5,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class KuramanimePlugin(SourcePlugin):
    """Kuramanime anime adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = KuramanimeParser(base_url=self.base_url)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    async def _listing(self, operation: str, path: str, args: List[Any]) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_listing(await self.fetcher.get(path))

        return await self._paged(operation, args, load)

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("latest", f"/quick/ongoing?order_by=latest&page={page}", [page])

    async def list_completed(self, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("complete", f"/quick/finished?order_by=latest&page={page}", [page])

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()
        path = f"/anime?search={quote_plus(query)}&order_by=popular&page={page}"
        return await self._listing("search", path, [query, page])

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("genre", f"/properties/genre/{genre}?page={page}", [genre, page])

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        """
        Render a series page with its episode list opened.

        Args:
            slug: ``{id}/{name}`` series slug
        """
        async def reveal_episodes(driver: RenderingDriver) -> None:
            await driver.pause()
            if await driver.click(EPISODE_TOGGLE):
                await driver.pause()

        async def load() -> Optional[ContentDetail]:
            return await self.create_renderer().render(
                self.url(f"/anime/{slug}"),
                lambda html: self.parser.parse_detail(html, slug),
                reveal_episodes,
            )

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def _switch_servers(self, driver: RenderingDriver, options: List[Tuple[int, str]]) -> List[StreamServer]:
        """Select each dropdown server in turn and record the player it loads."""
        collector = ServerCollector(SOURCE)

        frame = await driver.attribute("iframe", "src")
        if is_video_frame(frame, require_embed=True):
            collector.add(frame, "Default Player", DEFAULT_QUALITY)

        for index, label in options[:MAX_SERVERS]:
            try:
                if not await driver.select_option(SERVER_SELECT, index):
                    continue
                await driver.pause()
                frame = await driver.attribute("iframe", "src")
            except RenderingFailure as e:
                self.logger.debug(f"[{self.source}] server option {index} failed: {e}")
                continue

            if is_video_frame(frame):
                collector.add(frame, label, DEFAULT_QUALITY)

        return collector.servers

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        """
        Render an episode page and try every server in its dropdown.

        Args:
            unit_slug: ``{id}/{name}/episode/{n}`` episode slug

        Returns:
            Episode with servers, or None if the page cannot be rendered.
            Results without servers are not cached.
        """
        async def load() -> EpisodeDetail:
            async with self.create_renderer() as driver:
                await driver.navigate(self.url(f"/anime/{unit_slug}"))
                await driver.pause()
                html = await driver.content()
                servers = await self._switch_servers(driver, self.parser.server_options(html))
            return self.parser.parse_episode(html, unit_slug, servers)

        return await self._cached(
            "episode", [unit_slug], EpisodeDetail, load, None,
            cache_if=lambda detail: bool(detail.servers),
        )


# Export plugin class and metadata
__all__ = ["KuramanimePlugin", "plugin_metadata", "default_config"]
