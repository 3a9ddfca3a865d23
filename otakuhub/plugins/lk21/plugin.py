"""
LK21 Plugin - Source adapter for lk21 films and nontondrama series

Film listings and detail pages are static. Search results and players are
injected client-side, so those pages are rendered. Series live on a
companion site and are walked season by season from their first episode.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from otakuhub.core.exceptions import RenderingFailure
from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult
from otakuhub.core.renderer import RenderingDriver
from otakuhub.plugins.base import PluginMetadata, SourcePlugin

from .parser import SERIES_EPISODE, SOURCE, Lk21Parser, series_episode_slug


logger = logging.getLogger(__name__)

MAX_SEASONS = 20


plugin_metadata = PluginMetadata(
    name="LK21",
    version="1.0.0",
    description="Indonesian-subtitled films, with series on a companion site",
    website="https://tv8.lk21official.cc",
    content_type=ContentType.FILM,
    rate_limit=1.5,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "series_url": "https://tv3.nontondrama.my",
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


async def settle(driver: RenderingDriver) -> None:
    await driver.pause()


class Lk21Plugin(SourcePlugin):
    """LK21 film adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.series_url = str(self.config.get("series_url") or default_config["series_url"]).rstrip("/")
        self.parser = Lk21Parser(base_url=self.base_url, series_url=self.series_url)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    @staticmethod
    def _page_path(prefix: str, page: int) -> str:
        return prefix if page <= 1 else f"{prefix}/page/{page}"

    async def _listing(self, operation: str, prefix: str, page: int, genre: Optional[str] = None) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(self._page_path(prefix, page))
            return self.parser.parse_listing(html, page, genre=genre)

        return await self._paged(operation, [prefix, page], load, cache_empty=False)

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("latest", "/release", page)

    async def list_popular(self, page: int = 1) -> PagedResult[CatalogItem]:
        """Films featured on the home page; a single page."""
        if page > 1:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_trending(await self.fetcher.get("/"))

        return await self._paged("popular", [], load, cache_empty=False)

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        label = genre.replace("-", " ").title()
        return await self._listing("genre", f"/genre/{genre}", page, genre=label)

    async def list_by_country(self, country: str, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("country", f"/country/{country}", page)

    async def list_by_year(self, year: int, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("year", f"/year/{year}", page)

    async def list_top_rated(self, page: int = 1) -> PagedResult[CatalogItem]:
        return await self._listing("rating", "/rating", page)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        """Search is answered client-side, so the results page is rendered."""
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()

        path = f"/search?s={quote_plus(query)}" if page <= 1 else f"/search/page/{page}/?s={quote_plus(query)}"

        async def load() -> PagedResult[CatalogItem]:
            return await self.create_renderer().render(self.url(path), self.parser.parse_search, settle)

        return await self._paged("search", [query, page], load, cache_empty=False)

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        async def load() -> ContentDetail:
            return self.parser.parse_detail(await self.fetcher.get(f"/{slug}"), slug)

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def get_series_detail(self, slug: str) -> Optional[ContentDetail]:
        """
        Collect a series from the companion site.

        The first episode page names the season count; each season's first
        episode page lists that season's episodes.

        Args:
            slug: Series slug, with or without a trailing release year

        Returns:
            The series with episodes ordered by season then episode, or None
            when the page is not a series
        """
        async def load() -> Optional[ContentDetail]:
            async with self.create_renderer() as driver:
                await driver.navigate(f"{self.series_url}/{series_episode_slug(slug, 1, 1)}")
                await driver.pause()
                first = await driver.content()

                seasons = min(self.parser.total_seasons(first), MAX_SEASONS)
                if not seasons:
                    self.logger.info(f"[{self.source}] {slug} is not a series")
                    return None

                units = self.parser.parse_season_units(first, slug, 1)
                for season in range(2, seasons + 1):
                    await driver.navigate(f"{self.series_url}/{series_episode_slug(slug, season, 1)}")
                    await driver.pause()
                    units.extend(self.parser.parse_season_units(await driver.content(), slug, season))

            return self.parser.parse_series(first, slug, seasons, units)

        return await self._cached("series", [slug], ContentDetail, load, None)

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        """
        Render a film or series episode page and collect its players.

        A film page that cannot be rendered falls back to its static frames.
        Results without servers are not cached.
        """
        episode = SERIES_EPISODE.match(unit_slug) is not None

        async def load() -> EpisodeDetail:
            if episode:
                html = await self.create_renderer().render(f"{self.series_url}/{unit_slug}", str, settle)
                servers = self.parser.parse_servers(html, episode=True)
                return self.parser.parse_stream(html, unit_slug, servers)

            try:
                html = await self.create_renderer().render(self.url(f"/{unit_slug}"), str, settle)
                servers = self.parser.parse_servers(html)
            except RenderingFailure as e:
                self.logger.warning(f"[{self.source}] rendering {unit_slug} failed, using static page: {e}")
                html = await self.fetcher.get(f"/{unit_slug}")
                servers = self.parser.parse_static_servers(html)
            return self.parser.parse_stream(html, unit_slug, servers)

        return await self._cached(
            "episode", [unit_slug], EpisodeDetail, load, None,
            cache_if=lambda detail: bool(detail.servers),
        )


# Export plugin class and metadata
__all__ = ["Lk21Plugin", "plugin_metadata", "default_config"]
