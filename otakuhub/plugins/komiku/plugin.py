"""
Komiku Plugin - Source adapter for komiku.cc

Comic catalog (manga, manhwa, manhua). Listings and reader pages are
static. The comic page only shows the newest chapters until a "load more"
control is clicked repeatedly, so details are rendered in a browser.

Empty listings and chapters without images are not cached so that a
transient origin outage does not pin an empty result.
"""

import logging
from functools import partial
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from otakuhub.core.exceptions import UnsupportedOperation
from otakuhub.core.models import CatalogItem, ChapterContent, ContentDetail, ContentType, PagedResult
from otakuhub.core.renderer import RenderingDriver
from otakuhub.plugins.base import PluginMetadata, SourcePlugin

from .parser import COMIC_TYPES, LOAD_MORE_KEYWORDS, KomikuParser, SOURCE


logger = logging.getLogger(__name__)


plugin_metadata = PluginMetadata(
    name="Komiku",
    version="1.0.0",
    description="Indonesian manga, manhwa and manhua",
    website="https://komiku.cc",
    content_type=ContentType.COMIC,
    rate_limit=1.0,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class KomikuPlugin(SourcePlugin):
    """Komiku comic adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = KomikuParser(base_url=self.base_url)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    @staticmethod
    def _page_path(prefix: str, page: int) -> str:
        return prefix if page <= 1 else f"{prefix}/page/{page}"

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        if page > 1:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_latest(await self.fetcher.get("/"))

        return await self._paged("latest", [], load, cache_empty=False)

    async def list_all(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_list(await self.fetcher.get(self._page_path("/list", page)))

        return await self._paged("list", [page], load, cache_empty=False)

    async def list_by_type(self, content_type: str, page: int = 1) -> PagedResult[CatalogItem]:
        """
        List comics of one type.

        Args:
            content_type: manga, manhwa or manhua
            page: 1-based page number

        Raises:
            UnsupportedOperation: For any other type
        """
        content_type = content_type.strip().lower()
        if content_type not in COMIC_TYPES:
            raise UnsupportedOperation(self.source, f"list_by_type({content_type})")

        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(self._page_path(f"/{content_type}", page))
            return self.parser.parse_list(html, content_type)

        return await self._paged(content_type, [page], load, cache_empty=False)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query or page > 1:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_search(await self.fetcher.get(f"/search?q={quote_plus(query)}"))

        return await self._paged("search", [query], load, cache_empty=False)

    async def _expand_chapters(self, driver: RenderingDriver) -> None:
        await driver.load_more(
            LOAD_MORE_KEYWORDS,
            max_attempts=self.render_settings.load_more_max_attempts,
            delay=self.render_settings.load_more_delay,
        )
        await driver.pause()

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        async def load() -> ContentDetail:
            detail = await self.create_renderer().render(
                self.url(f"/komik/{slug}"),
                partial(self.parser.parse_detail, slug=slug),
                self._expand_chapters,
            )
            self.logger.info(f"Got detail for {slug}: {len(detail.units)} chapters")
            return detail

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def get_chapter(self, *slugs: str) -> Optional[ChapterContent]:
        """
        Get the page images of a chapter.

        Args:
            slugs: The chapter slug, optionally preceded by the comic slug

        Returns:
            ChapterContent, or None when the origin cannot be reached
        """
        if len(slugs) not in (1, 2) or not slugs[-1]:
            raise ValueError("get_chapter requires a chapter slug, optionally preceded by a comic slug")
        chapter_slug = slugs[-1]

        async def load() -> ChapterContent:
            return self.parser.parse_chapter(await self.fetcher.get(f"/{chapter_slug}"), chapter_slug)

        return await self._cached(
            "chapter",
            [chapter_slug],
            ChapterContent,
            load,
            None,
            cache_if=lambda chapter: bool(chapter.images),
        )


# Export plugin class and metadata
__all__ = ["KomikuPlugin", "plugin_metadata", "default_config"]
