"""
Anichin Markup Parser

This module turns anichin.watch pages into normalized records, including
the weekly release schedule. Episode mirrors are served as base64 encoded
iframe snippets inside the mirror dropdown and are decoded by the shared
stream resolver.
"""

import logging
import re
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import (
    CatalogItem,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    ScheduleEntry,
    StreamServer,
    Unit,
    WeeklySchedule,
)
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


SOURCE = "anichin"
DEFAULT_TYPE = "Donghua"

LATEST_ITEMS = ".listupd .bs, .bsx, article.bs, .animpost"
LIST_ITEMS = ".listupd .bs, .bsx, article.bs"
POPULAR_ITEMS = ".serieslist.pop li, .widget_series_list li, .popbx .bs"

LIST_NEXT = (".hpage .r", ".pagination .next", "a.next")
SHORT_NEXT = (".hpage .r", ".pagination .next")

CARD_TITLE = FieldChain(text(".tt h2"), text(".tt"), text(".title"), text("h2"), attr("a", "title"))
POPULAR_TITLE = FieldChain(text(".leftseries h2"), text(".tt"), attr("a", "title"))
CARD_POSTER = FieldChain(attr("img", "src", "data-src", "data-lazy-src"))
CARD_EPISODE = FieldChain(text(".epx"), text(".sb"))
CARD_TYPE = FieldChain(text(".typez"), text(".type"))

DETAIL_TITLE = FieldChain(text(".entry-title"), text(".infox h1"))
DETAIL_POSTER = FieldChain(
    attr(".thumb img", "src", "data-src"),
    attr(".info img", "src", "data-src"),
    attr(".bigcover img", "src", "data-src"),
)
DETAIL_SYNOPSIS = FieldChain(
    text(".synopis p"),
    text(".entry-content p"),
    text(".synopsis p"),
    text(".sinopsis p"),
    text(".entry-content"),
)

EPISODE_TITLE = FieldChain(text(".entry-title"), text("h1"))
PREV_LINK = FieldChain(attr(".naveps .prev a", "href"), attr(".prevnext .prev a", "href"))
NEXT_LINK = FieldChain(attr(".naveps .next a", "href"), attr(".prevnext .next a", "href"))

INFO_FIELDS = {
    "type": ("type", "tipe"),
    "status": ("status",),
    "score": ("score", "skor"),
    "duration": ("duration", "durasi"),
    "studio": ("studio",),
    "season": ("season", "musim"),
    "released": ("released", "rilis", "year"),
    "total_units": ("episodes", "episode"),
}

# Day headers appear in English or Indonesian depending on the theme locale
DAY_NAMES = {
    "monday": "monday", "senin": "monday",
    "tuesday": "tuesday", "selasa": "tuesday",
    "wednesday": "wednesday", "rabu": "wednesday",
    "thursday": "thursday", "kamis": "thursday",
    "friday": "friday", "jumat": "friday",
    "saturday": "saturday", "sabtu": "saturday",
    "sunday": "sunday", "minggu": "sunday",
}

TIME_PATTERN = re.compile(r'(\d{1,2}:\d{2})')


def match_day(label: str) -> Optional[str]:
    """Day bucket named in a header or attribute, if any."""
    label = (label or "").lower()
    for name, day in DAY_NAMES.items():
        if name in label:
            return day
    return None


class AnichinParser:
    """Parser for anichin markup."""

    def __init__(self, base_url: str = "https://anichin.watch"):
        self.base_url = base_url.rstrip('/')

    def series_url(self, slug: str) -> str:
        return f"{self.base_url}/donghua/{slug}/"

    @staticmethod
    def card_slug(href: str, from_unit: bool) -> str:
        if "/donghua/" in href:
            return slug_from_path(href, "donghua")
        if from_unit:
            return series_slug_from_unit(href)
        return URLHelper.last_segment(href)

    def _parse_cards(
        self,
        doc: Tag,
        selector: str,
        title_chain: FieldChain = CARD_TITLE,
        status: Optional[str] = None,
        from_unit: bool = False,
    ) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(selector):
            link = card.select_one("a")
            href = get_attr(link, "href") if link else ""
            title = TextCleaner.strip_episode_suffix(title_chain(card))
            slug = self.card_slug(href, from_unit) if href else ""

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
                type=CARD_TYPE(card) or DEFAULT_TYPE,
                status=status or text(".status")(card),
                rating=text(".rating i")(card) or text(".rating")(card),
                latest_unit=CARD_EPISODE(card) or None,
                url=self.series_url(slug),
            ))

        return items

    def parse_latest(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LATEST_ITEMS, from_unit=True),
            has_next=has_next_page(doc),
        )

    def parse_status_listing(self, html: str, status: str) -> PagedResult[CatalogItem]:
        """Parse an ongoing or completed listing."""
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LIST_ITEMS, status=status),
            has_next=has_next_page(doc, LIST_NEXT),
        )

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LIST_ITEMS, from_unit=True),
            has_next=has_next_page(doc, SHORT_NEXT),
        )

    def parse_genre(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LIST_ITEMS),
            has_next=has_next_page(doc, SHORT_NEXT),
        )

    def parse_popular(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, POPULAR_ITEMS, title_chain=POPULAR_TITLE),
            has_next=False,
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
        doc = BeautifulSoup(html, 'html.parser')
        info = map_info(
            parse_info_pairs(doc.select(".infox .spe span, .info-content .spe span, .spe span")),
            INFO_FIELDS,
        )
        alternatives = [
            alt.strip()
            for alt in ",".join(texts(doc, ".alter, .alternative")).split(",")
            if alt.strip()
        ]

        return ContentDetail(
            id=slug,
            slug=slug,
            title=DETAIL_TITLE(doc) or slug,
            source=SOURCE,
            content_type=ContentType.SERIES,
            poster=DETAIL_POSTER(doc),
            synopsis=DETAIL_SYNOPSIS(doc),
            type=info.get("type", DEFAULT_TYPE),
            status=info.get("status"),
            score=info.get("score"),
            duration=info.get("duration"),
            studio=info.get("studio"),
            season=info.get("season"),
            released=info.get("released"),
            total_units=info.get("total_units"),
            genres=texts(doc, '.genxed a, .genre-info a, .info a[href*="genre"]'),
            alternative_titles=alternatives,
            units=self.parse_units(doc),
            url=self.series_url(slug),
        )

    def parse_episode(self, doc: Tag, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        title = EPISODE_TITLE(doc)
        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=title.split("Episode", 1)[0].strip(),
            episode_number=TextCleaner.extract_number(title, r'Episode\s*(\d+)'),
            servers=list(servers),
            prev_slug=URLHelper.last_segment(PREV_LINK(doc)) or None,
            next_slug=URLHelper.last_segment(NEXT_LINK(doc)) or None,
        )

    def _schedule_entry(self, card: Tag, day: str, with_episode: bool) -> Optional[ScheduleEntry]:
        link = card.select_one("a")
        href = get_attr(link, "href") if link else ""
        title = text(".tt")(card) or (get_attr(link, "title") if link else "")
        if not href or not title:
            return None

        slug = slug_from_path(href, "donghua")
        if not slug and with_episode:
            slug = URLHelper.last_segment(href)
        if not slug:
            return None

        label = text(".time")(card) or text(".epx")(card) or ""
        time_match = TIME_PATTERN.search(label)
        episode_match = re.search(r'(\d+)$', label) if with_episode else None

        return ScheduleEntry(
            title=title,
            slug=slug,
            source=SOURCE,
            day=day,
            time=time_match.group(1) if time_match else None,
            poster=CARD_POSTER(card),
            episode=f"Episode {episode_match.group(1)}" if episode_match else None,
            url=self.series_url(slug),
        )

    def parse_schedule(self, html: str) -> WeeklySchedule:
        """
        Parse the release schedule page.

        Items are assigned to the most recent ``h3`` day header preceding
        them in document order. Items inside ``[data-day]`` containers are
        merged in afterwards, skipping slugs already present for that day.

        Args:
            html: Schedule page HTML

        Returns:
            WeeklySchedule with all seven buckets
        """
        doc = BeautifulSoup(html, 'html.parser')
        schedule = WeeklySchedule()

        current_day: Optional[str] = None
        for element in doc.select("h3, .bsx"):
            if element.name == "h3":
                current_day = match_day(element.get_text(" ", strip=True)) or current_day
                continue
            if current_day is None:
                continue
            entry = self._schedule_entry(element, current_day, with_episode=True)
            if entry is not None:
                schedule.add(entry)

        for card in doc.select(".schedule-item, .listupd .bs, .schedulepage .bsx"):
            container = card.find_parent(attrs={"data-day": True})
            if container is None:
                container = card.find_parent(class_="schedule-day")
            day = match_day(get_attr(container, "data-day")) if container is not None else None
            if day is None:
                continue
            entry = self._schedule_entry(card, day, with_episode=False)
            if entry is not None:
                schedule.add(entry)

        logger.debug(f"Parsed {len(schedule)} schedule entries")
        return schedule


# Export parser
__all__ = ["AnichinParser", "match_day", "SOURCE"]
