"""
Otakudesu Markup Parser

This module turns otakudesu.best pages (home, complete list, search, genre,
series detail, episode) into normalized records. It performs no I/O.
"""

import logging
import re
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult, StreamServer, Unit
from otakuhub.plugins.common.extraction import (
    FieldChain,
    ascending_units,
    attr,
    has_next_page,
    map_info,
    parse_info_pairs,
    slug_from_path,
    text,
    texts,
)
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


SOURCE = "otakudesu"

LATEST_ITEMS = ".venz ul li, .veildl ul li, .rseries ul li, .rapi ul li"
COMPLETE_ITEMS = LATEST_ITEMS + ", .col-anime-con"
SEARCH_ITEMS = ".veildl ul li, .chi_childs ul li, .page ul li"
GENRE_ITEMS = ".col-anime-con, .venz ul li, .veildl ul li"

LATEST_NEXT = (".pagination .next", ".hpage .r", "a.next", ".nextpostslink")
SHORT_NEXT = (".pagination .next", ".hpage .r")

CARD_TITLE = FieldChain(text(".jdlflm"), text(".thumb h2"), text("h2"), attr("a", "title"))
SEARCH_TITLE = FieldChain(text(".jdlflm"), text("h2"), attr("a", "title"), text("a"))
GENRE_TITLE = FieldChain(text(".col-anime-title"), text(".jdlflm"), text("h2"), attr("a", "title"))
CARD_POSTER = FieldChain(attr("img", "src", "data-src"))
CARD_EPISODE = FieldChain(text(".epz"), text(".newnime"))

DETAIL_TITLE = FieldChain(text(".jdlrx h1"), text(".infozin h1"), text(".entry-title"))
DETAIL_POSTER = FieldChain(attr(".fotoanime img", "src", "data-src"), attr(".thumbook img", "src", "data-src"))
DETAIL_SYNOPSIS = FieldChain(text(".sinopc p"), text(".desc p"), text(".sinopsis p"), text(".sinopc"), text(".sinopsis"))

EPISODE_TITLE = FieldChain(text(".entry-title"), text(".posttl"), text("h1"))
PREV_LINK = FieldChain(attr(".flir .lmark a", "href"), attr(".prevnext .prev a", "href"))
NEXT_LINK = FieldChain(attr(".flir .rmark a", "href"), attr(".prevnext .next a", "href"))

INFO_FIELDS = {
    "type": ("type", "tipe"),
    "status": ("status",),
    "score": ("score", "skor", "rating"),
    "duration": ("duration", "durasi"),
    "studio": ("studio", "produser"),
    "season": ("season", "musim"),
    "released": ("released", "rilis", "tanggal rilis"),
    "total_units": ("total episode", "episode"),
}

SKIPPED_UNIT_WORDS = ("batch", "download", "lengkap")


class OtakudesuParser:
    """Parser for otakudesu markup."""

    def __init__(self, base_url: str = "https://otakudesu.best"):
        """
        Initialize parser.

        Args:
            base_url: Base URL for constructing canonical URLs
        """
        self.base_url = base_url.rstrip('/')

    def series_url(self, slug: str) -> str:
        return f"{self.base_url}/anime/{slug}/"

    def _parse_cards(
        self,
        doc: Tag,
        selector: str,
        title_chain: FieldChain,
        status: Optional[str] = None,
        with_episode: bool = False,
        with_rating: bool = False,
        with_genres: bool = False,
    ) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(selector):
            link = card.select_one("a")
            href = get_attr(link, "href") if link else ""
            title = title_chain(card)
            slug = slug_from_path(href, "anime")

            if not href or not title or not slug or slug in seen:
                continue
            seen.add(slug)

            genre_text = text(".set")(card) if with_genres else None
            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=title,
                source=SOURCE,
                content_type=ContentType.SERIES,
                poster=CARD_POSTER(card),
                status=status,
                rating=text(".score")(card) if with_rating else None,
                latest_unit=(CARD_EPISODE(card) or None) if with_episode else None,
                genres=[genre_text] if genre_text else [],
                url=self.series_url(slug),
            ))

        return items

    def parse_latest(self, html: str) -> PagedResult[CatalogItem]:
        """Parse the home page (ongoing series with their newest episode)."""
        doc = BeautifulSoup(html, 'html.parser')
        items = self._parse_cards(doc, LATEST_ITEMS, CARD_TITLE, status="Ongoing", with_episode=True)
        return PagedResult[CatalogItem](
            data=items,
            has_next=has_next_page(doc, LATEST_NEXT, link_texts=("Next",)),
        )

    def parse_completed(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        items = self._parse_cards(doc, COMPLETE_ITEMS, CARD_TITLE, status="Completed", with_rating=True)
        return PagedResult[CatalogItem](data=items, has_next=has_next_page(doc, LATEST_NEXT))

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        items = self._parse_cards(doc, SEARCH_ITEMS, SEARCH_TITLE, with_genres=True)
        return PagedResult[CatalogItem](data=items, has_next=has_next_page(doc, SHORT_NEXT))

    def parse_genre(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        items = self._parse_cards(doc, GENRE_ITEMS, GENRE_TITLE)
        return PagedResult[CatalogItem](data=items, has_next=has_next_page(doc, SHORT_NEXT))

    def parse_units(self, doc: Tag) -> List[Unit]:
        """
        Parse the episode list, skipping batch and download entries.

        Returns:
            Episodes ascending by number
        """
        units: List[Unit] = []

        for row in doc.select(".episodelist ul li, .eplister ul li"):
            link = row.select_one("a")
            href = get_attr(link, "href") if link else ""
            label = TextCleaner.clean(link.get_text(" ", strip=True)) if link else ""
            label = label or text(".leftoff")(row) or ""

            if any(word in label.lower() for word in SKIPPED_UNIT_WORDS):
                continue
            if "/episode/" not in href:
                continue

            unit_slug = slug_from_path(href, "episode") or URLHelper.last_segment(href)
            if not unit_slug:
                continue
            number = (TextCleaner.extract_number(label, r'Episode\s*(\d+)')
                      or TextCleaner.extract_number(label, r'(\d+)'))

            units.append(Unit(
                id=unit_slug,
                slug=unit_slug,
                source=SOURCE,
                number=number,
                title=label,
                url=href,
                date=text(".rightoff")(row) or text(".zebin time")(row),
            ))

        return ascending_units(units)

    def parse_detail(self, html: str, slug: str) -> ContentDetail:
        """
        Parse a series page.

        Args:
            html: Series page HTML
            slug: Series slug the page was requested with

        Returns:
            ContentDetail with episodes ascending
        """
        doc = BeautifulSoup(html, 'html.parser')
        info = map_info(parse_info_pairs(doc.select(".infozin .infozingle p, .spe span")), INFO_FIELDS)

        genres: List[str] = []
        for row in doc.select(".infozin .infozingle p"):
            if "Genre" in row.get_text():
                genres.extend(texts(row, "a"))
        genres.extend(texts(doc, ".genre-info a, .genxed a"))

        return ContentDetail(
            id=slug,
            slug=slug,
            title=DETAIL_TITLE(doc) or slug,
            source=SOURCE,
            content_type=ContentType.SERIES,
            poster=DETAIL_POSTER(doc),
            synopsis=DETAIL_SYNOPSIS(doc),
            type=info.get("type", "TV"),
            status=info.get("status"),
            score=info.get("score"),
            duration=info.get("duration"),
            studio=info.get("studio"),
            season=info.get("season"),
            released=info.get("released"),
            total_units=info.get("total_units"),
            genres=genres,
            units=self.parse_units(doc),
            url=self.series_url(slug),
        )

    def parse_episode(self, html: str, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        """Parse episode metadata and attach resolved servers."""
        doc = BeautifulSoup(html, 'html.parser')
        title = EPISODE_TITLE(doc)
        prev_href = PREV_LINK(doc)
        next_href = NEXT_LINK(doc)

        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=re.split(r'Episode', title, maxsplit=1)[0].strip(),
            episode_number=TextCleaner.extract_number(title, r'Episode\s*(\d+)'),
            servers=list(servers),
            prev_slug=URLHelper.last_segment(prev_href) or None,
            next_slug=URLHelper.last_segment(next_href) or None,
        )


# Export parser
__all__ = ["OtakudesuParser", "SOURCE"]
