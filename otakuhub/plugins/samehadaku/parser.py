"""
Samehadaku Markup Parser

This module turns samehadaku.li pages into normalized records. Home page
cards often link to episode pages rather than series pages, so the series
slug is derived from the episode URL when no series link is present.
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
    series_slug_from_unit,
    slug_from_path,
    text,
    texts,
)
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


SOURCE = "samehadaku"

LATEST_ITEMS = ".post-show ul li, .listupd .bs, .bsx, article.bs, .animpost"
ONGOING_ITEMS = ".listupd .bs, .bsx, .animepost, article.bs"
SEARCH_ITEMS = ".listupd .bs, .bsx, .animepost"

LATEST_NEXT = (".hpage .r", ".pagination .next", ".next.page-numbers", "a.next", ".nextpostslink")
ONGOING_NEXT = (".pagination .next", ".hpage .r", "a.next")
SHORT_NEXT = (".pagination .next", ".hpage .r")

CARD_TITLE = FieldChain(text(".tt h2"), text(".tt"), text(".title"), text("h2"), attr("a", "title"))
CARD_POSTER = FieldChain(attr("img", "src", "data-src", "data-lazy-src"))
CARD_EPISODE = FieldChain(text(".epx"), text(".sb"))
CARD_TYPE = FieldChain(text(".typez"), text(".type"))
CARD_RATING = FieldChain(text(".rating i"), text(".score"))

DETAIL_TITLE = FieldChain(text(".entry-title"), text(".infox h1"))
DETAIL_POSTER = FieldChain(
    attr(".thumb img", "src", "data-src"),
    attr(".bigcover img", "src", "data-src"),
    attr(".info img", "src", "data-src"),
)
DETAIL_SYNOPSIS = FieldChain(
    text(".entry-content p"),
    text(".synops p"),
    text(".desc"),
    text(".sinopsis p"),
    text(".entry-content"),
)

EPISODE_TITLE = FieldChain(text(".entry-title"), text("h1"))
PREV_LINK = FieldChain(attr(".prevnext .prev a", "href"), attr(".naveps .prev a", "href"))
NEXT_LINK = FieldChain(attr(".prevnext .next a", "href"), attr(".naveps .next a", "href"))

INFO_FIELDS = {
    "type": ("type", "tipe"),
    "status": ("status",),
    "score": ("score", "skor"),
    "duration": ("duration", "durasi"),
    "studio": ("studio",),
    "season": ("season", "musim"),
    "released": ("released", "rilis"),
    "total_units": ("episodes", "episode"),
}


def card_slug(href: str) -> str:
    """Series slug for a card link: series URL first, then episode URL heuristics."""
    if "/anime/" in href:
        return slug_from_path(href, "anime")
    return series_slug_from_unit(href)


class SamehadakuParser:
    """Parser for samehadaku markup."""

    def __init__(self, base_url: str = "https://samehadaku.li"):
        self.base_url = base_url.rstrip('/')

    def series_url(self, slug: str) -> str:
        return f"{self.base_url}/anime/{slug}/"

    def _parse_cards(self, doc: Tag, selector: str, status: Optional[str] = None) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(selector):
            link = card.select_one("a")
            href = get_attr(link, "href") if link else ""
            title = TextCleaner.strip_episode_suffix(CARD_TITLE(card))
            slug = card_slug(href) if href else ""

            if not title or not slug or slug in seen:
                continue
            seen.add(slug)

            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=title,
                source=SOURCE,
                content_type=ContentType.SERIES,
                poster=CARD_POSTER(card),
                type=CARD_TYPE(card) or "TV",
                status=status or text(".status")(card),
                rating=CARD_RATING(card) or None,
                latest_unit=CARD_EPISODE(card) or None,
                url=self.series_url(slug),
            ))

        return items

    def parse_latest(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LATEST_ITEMS),
            has_next=has_next_page(doc, LATEST_NEXT),
        )

    def parse_ongoing(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, ONGOING_ITEMS, status="Ongoing"),
            has_next=has_next_page(doc, ONGOING_NEXT),
        )

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, SEARCH_ITEMS),
            has_next=has_next_page(doc, SHORT_NEXT),
        )

    def parse_units(self, doc: Tag) -> List[Unit]:
        units: List[Unit] = []

        for link in doc.select(".eplister ul li a, .episodelist ul li a, .listeps ul li a"):
            href = get_attr(link, "href")
            if not href:
                continue

            label = (text(".epl-title")(link) or text(".eptitle")(link)
                     or TextCleaner.clean(link.get_text(" ", strip=True)))
            unit_slug = URLHelper.last_segment(href)
            if not unit_slug:
                continue
            units.append(Unit(
                id=unit_slug,
                slug=unit_slug,
                source=SOURCE,
                number=text(".epl-num")(link) or TextCleaner.extract_number(label, r'(\d+)'),
                title=label,
                url=href,
                date=text(".epl-date")(link),
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
        info = map_info(parse_info_pairs(doc.select(".spe span, .info-content span")), INFO_FIELDS)

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
            genres=texts(doc, '.genxed a, .genre-info a, .info a[href*="genre"]'),
            units=self.parse_units(doc),
            url=self.series_url(slug),
        )

    def parse_episode(self, doc: Tag, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        title = EPISODE_TITLE(doc)
        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=re.split(r'Episode', title, maxsplit=1)[0].strip(),
            episode_number=TextCleaner.extract_number(title, r'Episode\s*(\d+)'),
            servers=list(servers),
            prev_slug=URLHelper.last_segment(PREV_LINK(doc)) or None,
            next_slug=URLHelper.last_segment(NEXT_LINK(doc)) or None,
        )


# Export parser
__all__ = ["SamehadakuParser", "card_slug", "SOURCE"]
