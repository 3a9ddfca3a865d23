"""
Subnime Markup Parser

This module turns subnime pages (home, search and genre listings, rendered
series detail snapshots, rendered episode pages, wrapper player pages) into
normalized records. It performs no I/O.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult, StreamServer, Unit
from otakuhub.plugins.common.extraction import (
    FieldChain,
    ascending_units,
    attr,
    has_next_page,
    map_info,
    parse_info_pairs,
    text,
    texts,
)
from otakuhub.plugins.common.streams import is_player_frame
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


SOURCE = "subnime"

CARD_ITEMS = ".anime-card"
NEXT_SELECTORS = ('a[rel="next"]', ".pagination .next")
RANGE_SELECT = "#episode-range-select"
EPISODE_TAB = ".tab-btn"
EPISODE_ITEMS = '.episode-grid-item, .episode-list-item, #episode-grid-view a, #episode-list-view a, a[href*="episode-"]'
SERVER_ITEMS = ".server-btn, button[data-url], .server-item"

SERIES_LINK = re.compile(r'/anime/([^/?#]+)')
EPISODE_SLUG = re.compile(r'^(.+)-episode-(\d+)$')
PAGE_TITLE_SUFFIX = re.compile(r'\s*\|.*$')

# Wrapper pages that embed the actual player in an inner frame
WRAPPER_MARKERS = ("subcrp.site", "player.php")
INNER_PLAYER_MARKERS = ("blogger.com", "video.g", "drive.google")

CARD_POSTER = FieldChain(attr(".card-poster img, img.anime-poster, img", "src", "data-src"))
CARD_EPISODE = FieldChain(text(".episode-badge"))
CARD_STATUS = FieldChain(text(".status-badge"))

DETAIL_TITLE = FieldChain(text(".hero-title"), text("h1"))
DETAIL_POSTER = FieldChain(
    attr('.hero-poster img, .poster img, img[class*="poster"]', "src", "data-src"),
    attr('meta[property="og:image"]', "content"),
)
DETAIL_SYNOPSIS = FieldChain(
    text(".hero-description"),
    text(".synopsis"),
    attr('meta[property="og:description"]', "content"),
)

EPISODE_TITLE = FieldChain(text("h2"), text("h1"))
PREV_LINK = FieldChain(attr('a[title*="Sebelumnya"], a[title*="Previous"]', "href"))
NEXT_LINK = FieldChain(attr('a[title*="Selanjutnya"], a[title*="Next"]', "href"))

INFO_FIELDS = {
    "type": ("type", "tipe"),
    "status": ("status",),
    "score": ("rating", "score", "skor"),
    "duration": ("duration", "durasi"),
    "studio": ("studio",),
    "season": ("season", "musim"),
    "released": ("aired", "released", "rilis"),
    "total_units": ("episode", "episodes"),
}


def is_wrapper(url: str) -> bool:
    return any(marker in url for marker in WRAPPER_MARKERS)


def page_title(doc: Tag) -> str:
    """Document title without the site suffix or a leading "Nonton"."""
    title = PAGE_TITLE_SUFFIX.sub("", text("title")(doc) or "")
    return re.sub(r'^Nonton\s+', '', title).strip()


class SubnimeParser:
    """Parser for subnime markup."""

    def __init__(self, base_url: str = "https://subnime.com"):
        self.base_url = base_url.rstrip('/')

    def series_url(self, slug: str) -> str:
        return f"{self.base_url}/anime/{slug}"

    def _absolute(self, url: str) -> str:
        return URLHelper.make_absolute(url, self.base_url) if url else ""

    @staticmethod
    def _card_link(card: Tag) -> Tuple[str, str]:
        """(href, title) of a card, whichever of its three layouts it uses."""
        title_link = card.select_one(".card-title a")
        if title_link is not None:
            return get_attr(title_link, "href"), title_link.get_text(" ", strip=True)
        if card.name == "a":
            return get_attr(card, "href"), text(".anime-title")(card) or get_attr(card, "title")
        link = card.select_one('a[href*="/anime/"]')
        if link is None:
            return "", ""
        return get_attr(link, "href"), link.get_text(" ", strip=True) or text("h3")(card) or ""

    @staticmethod
    def _info_with_icon(card: Tag, icon: str) -> str:
        for item in card.select(".info-item"):
            if item.select_one(icon) is not None:
                return TextCleaner.clean(item.get_text(" ", strip=True))
        return ""

    def parse_listing(self, html: str) -> PagedResult[CatalogItem]:
        """Parse the home, search or genre card grid."""
        doc = BeautifulSoup(html, 'html.parser')
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(CARD_ITEMS):
            href, title = self._card_link(card)
            match = SERIES_LINK.search(href)
            title = TextCleaner.clean(title)
            if match is None or len(title) < 2 or match.group(1) in seen:
                continue
            slug = match.group(1)
            seen.add(slug)

            rating = re.sub(r'[^\d.]', '', self._info_with_icon(card, ".fa-star"))
            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=title,
                source=SOURCE,
                content_type=ContentType.SERIES,
                poster=self._absolute(CARD_POSTER(card)),
                type=self._info_with_icon(card, ".fa-tv") or "TV",
                status=CARD_STATUS(card) or None,
                rating=rating or None,
                latest_unit=CARD_EPISODE(card) or None,
                url=self.series_url(slug),
            ))

        return PagedResult[CatalogItem](data=items, has_next=has_next_page(doc, NEXT_SELECTORS))

    @staticmethod
    def _info(doc: Tag) -> Dict[str, str]:
        """Info rows plus ``<h3>label</h3><p>value</p>`` pairs."""
        info = parse_info_pairs(doc.select(".info-item, .detail-info span, .anime-meta span"))
        for heading in doc.select("h3"):
            label = TextCleaner.clean(heading.get_text(" ", strip=True)).lower()
            sibling = heading.find_next_sibling()
            value = TextCleaner.clean(sibling.get_text(" ", strip=True)) if sibling is not None else ""
            if label and value and len(value) < 200:
                info.setdefault(label, value)
        return info

    def parse_units(self, snapshots: Sequence[str]) -> List[Unit]:
        """
        Episodes across every episode-range snapshot, unique by number.

        Returns:
            Episodes ascending by number
        """
        units: List[Unit] = []
        seen = set()

        for html in snapshots:
            doc = BeautifulSoup(html, 'html.parser')
            for element in doc.select(EPISODE_ITEMS):
                link = element if element.name == "a" else element.select_one("a")
                href = get_attr(link, "href") if link is not None else ""
                label = link.get_text(" ", strip=True) if link is not None else ""
                unit_slug = URLHelper.last_segment(href)
                number = (TextCleaner.extract_number(label, r'(\d+)')
                          or TextCleaner.extract_number(href, r'episode-(\d+)'))
                if not unit_slug or number in seen:
                    continue
                seen.add(number)

                units.append(Unit(
                    id=unit_slug,
                    slug=unit_slug,
                    source=SOURCE,
                    number=number,
                    title=f"Episode {number}",
                    url=self._absolute(href),
                ))

        return ascending_units(units, newest_first=False)

    def parse_detail(self, snapshots: Sequence[str], slug: str) -> Optional[ContentDetail]:
        """
        Parse a rendered series page.

        Args:
            snapshots: Page HTML after opening the episode tab, then once per
                selected episode range
            slug: Series slug

        Returns:
            The detail, or None when the page has no title
        """
        doc = BeautifulSoup(snapshots[0] if snapshots else "", 'html.parser')
        title = DETAIL_TITLE(doc) or page_title(doc)
        if not title:
            return None

        info = map_info(self._info(doc), INFO_FIELDS)
        units = self.parse_units(snapshots)

        return ContentDetail(
            id=slug,
            slug=slug,
            title=title,
            source=SOURCE,
            content_type=ContentType.SERIES,
            poster=self._absolute(DETAIL_POSTER(doc)),
            synopsis=DETAIL_SYNOPSIS(doc),
            type=info.get("type", "TV"),
            status=info.get("status"),
            score=info.get("score"),
            duration=info.get("duration"),
            studio=info.get("studio"),
            season=info.get("season"),
            released=info.get("released"),
            total_units=info.get("total_units") or (str(len(units)) if units else None),
            genres=texts(doc, 'a[href*="genre"], .genre-badge'),
            units=units,
            url=self.series_url(slug),
        )

    @staticmethod
    def server_entries(html: str) -> List[Tuple[str, str]]:
        """
        (name, url) of each server button.

        Pages without buttons fall back to their player frames.
        """
        doc = BeautifulSoup(html, 'html.parser')
        entries: List[Tuple[str, str]] = []

        for element in doc.select(SERVER_ITEMS):
            url = get_attr(element, "data-url")
            if url:
                name = TextCleaner.clean(element.get_text(" ", strip=True))
                entries.append((name or f"Server {len(entries) + 1}", url))

        if not entries:
            for frame in doc.select("iframe"):
                url = get_attr(frame, "src")
                if is_player_frame(url):
                    entries.append(("HD-1", url))

        return entries

    @staticmethod
    def inner_player(html: str) -> Optional[str]:
        """Known inner player frame of a wrapper page."""
        frame = BeautifulSoup(html or "", 'html.parser').select_one("iframe")
        url = get_attr(frame, "src") if frame is not None else ""
        if any(marker in url for marker in INNER_PLAYER_MARKERS):
            return url
        return None

    def parse_episode(self, html: str, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        doc = BeautifulSoup(html, 'html.parser')
        full_title = EPISODE_TITLE(doc) or page_title(doc)
        match = EPISODE_SLUG.match(slug)

        if match:
            parent_title = TextCleaner.title_from_slug(match.group(1))
            number = match.group(2)
        else:
            parent_title = TextCleaner.strip_episode_suffix(full_title)
            number = TextCleaner.extract_number(full_title, r'Episode\s*(\d+)')

        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=full_title or f"{parent_title} Episode {number}".strip(),
            parent_title=parent_title,
            episode_number=number,
            servers=list(servers),
            prev_slug=URLHelper.last_segment(PREV_LINK(doc)) or None,
            next_slug=URLHelper.last_segment(NEXT_LINK(doc)) or None,
        )


# Export parser
__all__ = ["SubnimeParser", "SOURCE", "RANGE_SELECT", "EPISODE_TAB", "is_wrapper"]
