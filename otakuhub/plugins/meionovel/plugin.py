"""
MeioNovel Plugin - Source adapter for meionovels.com

Light novels translated to Indonesian (machine or human translation). The
chapter list of a novel is filled in stages, each used only when the
previous one came up short:

1. chapters listed inline on the novel page
2. the Madara ``manga_get_chapters`` admin-ajax fragment
3. chapter-looking links and the "Read First"/"Read Last" buttons
4. a rendered page, scrolled until the chapter count stops growing

Empty listings are not cached.
"""

import logging
from functools import partial
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from otakuhub.core.exceptions import FetchFailure, RenderingFailure
from otakuhub.core.models import CatalogItem, ChapterContent, ContentDetail, ContentType, PagedResult, Unit
from otakuhub.core.renderer import RenderingDriver
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.extraction import ascending_units

from .parser import (
    CHAPTER_COUNT_SELECTOR,
    SHOW_MORE_KEYWORDS,
    SHOW_MORE_SELECTORS,
    MeioNovelParser,
    SOURCE,
    parse_post_id,
)


logger = logging.getLogger(__name__)

RENDER_THRESHOLD = 2
RELATED_FROM_GENRE = 6


plugin_metadata = PluginMetadata(
    name="MeioNovel",
    version="1.0.0",
    description="Indonesian light novel translations (HTL and MTL)",
    website="https://meionovels.com",
    content_type=ContentType.NOVEL,
    rate_limit=1.0,
    requires_rendering=True,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


def merge_units(*groups: List[Unit]) -> List[Unit]:
    """Concatenate chapter groups keeping the first chapter seen per slug."""
    merged: Dict[str, Unit] = {}
    for group in groups:
        for unit in group:
            merged.setdefault(unit.slug, unit)
    return list(merged.values())


class MeioNovelPlugin(SourcePlugin):
    """MeioNovel light novel adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = MeioNovelParser(base_url=self.base_url)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    @staticmethod
    def _page_path(prefix: str, page: int, query: str = "") -> str:
        path = prefix if page <= 1 else f"{prefix}page/{page}/"
        return path + query

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(self._page_path("/novel/", page))
            return self.parser.parse_listing(html, with_badge=True)

        return await self._paged("latest", [page], load, cache_empty=False)

    async def list_popular(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(self._page_path("/novel/", page, "?m_orderby=views"))
            return self.parser.parse_listing(html)

        return await self._paged("popular", [page], load, cache_empty=False)

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_genre(await self.fetcher.get(self._page_path(f"/novel-genre/{genre}/", page)))

        return await self._paged("genre", [genre, page], load, cache_empty=False)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            html = await self.fetcher.get(
                self._page_path("/", page, f"?s={quote_plus(query)}&post_type=wp-manga")
            )
            return self.parser.parse_search(html)

        return await self._paged("search", [query, page], load, cache_empty=False)

    async def _fetch_chapter_fragment(self, slug: str, post_id: str) -> List[Unit]:
        try:
            html = await self.fetcher.post_form(
                "/wp-admin/admin-ajax.php",
                {"action": "manga_get_chapters", "manga": post_id},
                headers={"Referer": self.parser.novel_url(slug)},
            )
        except FetchFailure as e:
            self.logger.warning(f"Chapter list request for {slug} failed: {e}")
            return []
        return self.parser.parse_fragment_chapters(html, slug)

    async def _reveal_chapters(self, driver: RenderingDriver) -> None:
        """Expand the chapter section, then scroll until no more chapters load."""
        await driver.pause()

        clicked = False
        for selector in SHOW_MORE_SELECTORS:
            if await driver.click(selector):
                clicked = True
                break
        if not clicked:
            clicked = await driver.click_by_text(SHOW_MORE_KEYWORDS, tags="span, button, a")
        if clicked:
            await driver.pause()

        total = await driver.scroll_until_stalled(
            CHAPTER_COUNT_SELECTOR,
            max_scrolls=self.render_settings.scroll_max_attempts,
            stall_limit=self.render_settings.scroll_stall_limit,
            delay=self.render_settings.scroll_delay,
        )
        self.logger.debug(f"Scrolling finished with {total} chapters loaded")

    async def _render_chapters(self, slug: str) -> List[Unit]:
        try:
            return await self.create_renderer().render(
                self.parser.novel_url(slug),
                partial(self.parser.parse_rendered_chapters, novel_slug=slug),
                self._reveal_chapters,
            )
        except RenderingFailure as e:
            self.logger.warning(f"Rendered chapter extraction for {slug} failed: {e}")
            return []

    async def _related_from_genre(self, detail: ContentDetail) -> List[CatalogItem]:
        genre = detail.genres[0].lower().replace(" ", "-")
        page = await self.list_by_genre(genre)
        return [item for item in page.data if item.slug != detail.slug][:RELATED_FROM_GENRE]

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        """
        Get a novel with its full chapter list, ascending.

        Returns:
            ContentDetail, or None when the novel page cannot be fetched
        """
        async def load() -> ContentDetail:
            doc = await self.get_document(f"/novel/{slug}/")
            detail = self.parser.parse_detail(doc, slug)
            units = detail.units

            post_id = parse_post_id(doc)
            if not units and post_id:
                units = await self._fetch_chapter_fragment(slug, post_id)
            if not units:
                units = self.parser.parse_chapter_links(doc, slug) or self.parser.parse_read_buttons(doc, slug)
            if len(units) <= RENDER_THRESHOLD:
                units = merge_units(units, await self._render_chapters(slug))

            detail.units = ascending_units(units)
            if not detail.related and detail.genres:
                detail.related = await self._related_from_genre(detail)

            self.logger.info(f"Found {len(detail.units)} chapters for {slug}")
            return detail

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def get_chapter(self, *slugs: str) -> Optional[ChapterContent]:
        """
        Get the text of a chapter.

        Args:
            slugs: Novel slug and chapter slug

        Returns:
            ChapterContent, or None when the origin cannot be reached
        """
        if len(slugs) != 2:
            raise ValueError("get_chapter requires a novel slug and a chapter slug")
        novel_slug, chapter_slug = slugs

        async def load() -> ChapterContent:
            html = await self.fetcher.get(f"/novel/{novel_slug}/{chapter_slug}/")
            return self.parser.parse_chapter(html, novel_slug, chapter_slug)

        return await self._cached("chapter", [novel_slug, chapter_slug], ChapterContent, load, None)


# Export plugin class and metadata
__all__ = ["MeioNovelPlugin", "plugin_metadata", "default_config", "merge_units"]
