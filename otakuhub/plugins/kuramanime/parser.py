"""
Kuramanime Markup Parser

This module turns kuramanime pages (quick listings, search, genre, rendered
series detail and episode pages) into normalized records. It performs no I/O.

Series are addressed by numeric id and name, so slugs take the form
``{id}/{name}`` and episode slugs ``{id}/{name}/episode/{n}``.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult, StreamServer, Unit
from otakuhub.plugins.common.extraction import (
    FieldChain,
    ascending_units,
    attr,
    map_info,
    parse_info_pairs,
    text,
    texts,
)
from otakuhub.plugins.common.streams import is_player_frame
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


SOURCE = "kuramanime"

CARD_ITEMS = ".product__item, .anime__item, .anime-card"
NEXT_CONTROL = ".pagination .next, .page-item:last-child a"
SERVER_SELECT = "#changeServer"
EPISODE_TOGGLE = "#episodeLists"

SERIES_LINK = re.compile(r'/anime/(\d+)/([^/?#]+)')
UNIT_LINK = re.compile(r'/anime/(\d+)/([^/?#]+)/episode/(\d+)')
EPISODE_NUMBER = re.compile(r'/episode/(\d+)')
BACKGROUND = re.compile(r'background-image:\s*url\([\'"]?([^\'")\s]+)', re.IGNORECASE)
SITE_SUFFIX = re.compile(r'\s*-\s*Kuramanime.*$', re.IGNORECASE)

# Frames that are chat or social widgets rather than players
NON_PLAYER_MARKERS = ("kuramachat", "/chat/", "widget")

CARD_TITLE = FieldChain(text(".product__item__text h5"), text(".anime__item__text h5"), text("h5"), attr("a", "title"))
CARD_POSTER = FieldChain(
    attr("img", "src", "data-src"),
    attr("[data-setbg]", "data-setbg"),
)
CARD_STATUS = FieldChain(text(".ep-status"), text(".status"))
CARD_TYPE = FieldChain(text(".type"), text(".badge"))
CARD_EPISODE = FieldChain(text(".ep"), text(".episode"))

DETAIL_TITLE = FieldChain(
    text("h1"),
    text(".anime__details__title h3"),
    text(".anime__details__text h3"),
    text("title"),
)
DETAIL_POSTER = FieldChain(
    attr(".anime__details__pic img, .poster img, img.poster", "src", "data-src"),
    attr(".anime__details__pic", "data-setbg"),
)
DETAIL_SYNOPSIS = FieldChain(text(".anime__details__text p"), text(".synopsis"), text(".synop"), text(".description"))

EPISODE_TITLE = FieldChain(text("h1"), text(".episode-title"))
PREV_LINK = FieldChain(attr(".prev-ep a", "href"))
NEXT_LINK = FieldChain(attr(".next-ep a", "href"))

INFO_FIELDS = {
    "type": ("type", "tipe"),
    "status": ("status",),
    "score": ("score", "skor", "rating"),
    "duration": ("duration", "durasi"),
    "studio": ("studio",),
    "season": ("season", "musim"),
    "released": ("released", "rilis"),
    "total_units": ("episodes", "episode"),
}


def background_image(node: Tag) -> str:
    for element in node.select('[style*="background"]'):
        match = BACKGROUND.search(get_attr(element, "style"))
        if match:
            return match.group(1)
    return ""


def unit_slug_from_link(href: str) -> Optional[str]:
    """``{id}/{name}/episode/{n}`` from an episode link."""
    match = UNIT_LINK.search(href or "")
    return "/".join((match.group(1), match.group(2), "episode", match.group(3))) if match else None


def is_video_frame(url: Optional[str], require_embed: bool = False) -> bool:
    """Whether a rendered iframe URL is a player; the default frame must be an embed."""
    if not is_player_frame(url or ""):
        return False
    if any(marker in url for marker in NON_PLAYER_MARKERS):
        return False
    return "embed" in url or not require_embed


class KuramanimeParser:
    """Parser for kuramanime markup."""

    def __init__(self, base_url: str = "https://v13.kuramanime.tel"):
        self.base_url = base_url.rstrip('/')

    def series_url(self, slug: str) -> str:
        return f"{self.base_url}/anime/{slug}"

    def _poster(self, node: Tag, chain: FieldChain) -> str:
        poster = chain(node) or background_image(node)
        return URLHelper.make_absolute(poster, self.base_url) if poster else ""

    def parse_listing(self, html: str) -> PagedResult[CatalogItem]:
        """
        Parse any card listing (quick lists, search, genre).

        A next page exists when the pagination control is present and not
        disabled.
        """
        doc = BeautifulSoup(html, 'html.parser')
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(CARD_ITEMS):
            link = card if card.name == "a" else card.select_one("a[href]")
            match = SERIES_LINK.search(get_attr(link, "href")) if link is not None else None
            if match is None:
                continue

            slug = f"{match.group(1)}/{match.group(2)}"
            if slug in seen:
                continue
            seen.add(slug)

            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=CARD_TITLE(card) or match.group(2).replace("-", " "),
                source=SOURCE,
                content_type=ContentType.SERIES,
                poster=self._poster(card, CARD_POSTER),
                type=CARD_TYPE(card) or None,
                status=CARD_STATUS(card) or None,
                latest_unit=CARD_EPISODE(card) or None,
                url=self.series_url(slug),
            ))

        return PagedResult[CatalogItem](data=items, has_next=self._has_next(doc))

    @staticmethod
    def _has_next(doc: Tag) -> bool:
        control = doc.select_one(NEXT_CONTROL)
        if control is None:
            return False
        classes = list(control.get("class") or [])
        if control.parent is not None:
            classes.extend(control.parent.get("class") or [])
        return "disabled" not in classes

    def parse_units(self, doc: Tag, slug: str) -> List[Unit]:
        units: List[Unit] = []
        seen = set()

        for link in doc.select('a[href*="/episode/"]'):
            href = get_attr(link, "href")
            match = EPISODE_NUMBER.search(href)
            if match is None or match.group(1) in seen:
                continue
            number = match.group(1)
            seen.add(number)

            unit_slug = f"{slug}/episode/{number}"
            units.append(Unit(
                id=unit_slug,
                slug=unit_slug,
                source=SOURCE,
                number=number,
                title=f"Episode {number}",
                url=URLHelper.make_absolute(href, self.base_url),
            ))

        return ascending_units(units, newest_first=False)

    def parse_detail(self, html: str, slug: str) -> Optional[ContentDetail]:
        """
        Parse a rendered series page with its episode list revealed.

        Returns:
            The detail, or None when the page has no title
        """
        doc = BeautifulSoup(html, 'html.parser')
        title = SITE_SUFFIX.sub("", DETAIL_TITLE(doc)).strip()
        if not title:
            logger.debug(f"No title on kuramanime page {slug}")
            return None

        info = map_info(parse_info_pairs(doc.select(".anime__details__widget li, .anime-info li")), INFO_FIELDS)

        return ContentDetail(
            id=slug,
            slug=slug,
            title=title,
            source=SOURCE,
            content_type=ContentType.SERIES,
            poster=self._poster(doc, DETAIL_POSTER),
            synopsis=DETAIL_SYNOPSIS(doc),
            type=info.get("type"),
            status=info.get("status"),
            rating=info.get("score"),
            score=info.get("score"),
            duration=info.get("duration"),
            studio=info.get("studio"),
            season=info.get("season"),
            released=info.get("released"),
            total_units=info.get("total_units"),
            genres=texts(doc, '.genre a, a[href*="genre"]'),
            units=self.parse_units(doc, slug),
            url=self.series_url(slug),
        )

    @staticmethod
    def server_options(html: str) -> List[Tuple[int, str]]:
        """(option index, label) of each server dropdown option carrying a value."""
        doc = BeautifulSoup(html, 'html.parser')
        options = []
        for index, option in enumerate(doc.select(f"{SERVER_SELECT} option")):
            label = TextCleaner.clean(option.get_text(" ", strip=True))
            if get_attr(option, "value") and label:
                options.append((index, label))
        return options

    def parse_episode(self, html: str, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        doc = BeautifulSoup(html, 'html.parser')
        number = TextCleaner.extract_number(slug, r'/episode/(\d+)$')
        title = EPISODE_TITLE(doc) or f"Episode {number}"
        series_name = slug.split("/")[1] if slug.count("/") >= 1 else slug

        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=TextCleaner.strip_episode_suffix(title) or TextCleaner.title_from_slug(series_name),
            episode_number=number,
            servers=list(servers),
            prev_slug=unit_slug_from_link(PREV_LINK(doc)),
            next_slug=unit_slug_from_link(NEXT_LINK(doc)),
        )


# Export parser
__all__ = ["KuramanimeParser", "SOURCE", "SERVER_SELECT", "EPISODE_TOGGLE", "is_video_frame"]
