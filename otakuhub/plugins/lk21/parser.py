"""
LK21 Markup Parser

This module turns lk21 pages (release listings, genre/country/year/rating
listings, film detail, rendered player pages) and the companion series site
into normalized records. It performs no I/O.

Film cards have no stable container: every anchor wrapping a poster image
whose path is a single segment is a film, and navigation links are filtered
out by path.
"""

import logging
import re
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import (
    DEFAULT_QUALITY,
    CatalogItem,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    StreamServer,
    Unit,
)
from otakuhub.plugins.common.extraction import FieldChain, attr, pattern, text, texts
from otakuhub.plugins.common.streams import ServerCollector, StreamResolver
from otakuhub.plugins.common.utils import TextCleaner, get_attr


logger = logging.getLogger(__name__)


SOURCE = "lk21"

SKIPPED_PATHS = (
    "/genre/", "/country/", "/artist/", "/series/", "/page/", "/translator/",
    "/release/", "/search/", "/year/", "/rating", "/director/",
)

PAGE_SIZE = 24
TRENDING_SIZE = 48
RELATED_SIZE = 12
FULL_PAGE = 20

YEAR_SUFFIX = re.compile(r'-(\d{4})$')
TOTAL_PAGES = re.compile(r'dari\s+(\d+)\s+total\s+halaman', re.IGNORECASE)
SEASON_TOTAL = re.compile(r'Season\s*\d+\s*dari\s*(\d+)', re.IGNORECASE)
SEASON_SUFFIX = re.compile(r"\s*-?\s*Season.*$", re.IGNORECASE)
EPISODE_BUTTON = re.compile(r'^[1-9]\d?$')
SERIES_EPISODE = re.compile(
    r'^(?P<series>.+)-season-(?P<season>\d+)-episode-(?P<episode>\d+)(?:-(?P<year>\d{4}))?$'
)
YOUTUBE_EMBED = re.compile(r'embed/([A-Za-z0-9_-]+)')

CARD_POSTER = FieldChain(attr("img", "src", "data-src"))
DETAIL_TITLE = FieldChain(text("h1"), text("title"))
DETAIL_POSTER = FieldChain(
    attr('meta[property="og:image"]', "content"),
    attr(".poster img, .thumb img, .cover img", "src", "data-src"),
)
SYNOPSIS_SELECTOR = '.synopsis, .sinopsis, .description, .desc, [itemprop="description"]'
META_SYNOPSIS = FieldChain(
    attr('meta[name="description"]', "content"),
    attr('meta[property="og:description"]', "content"),
)
RATING = pattern('.rating, .imdb, [itemprop="ratingValue"]', r'(\d+(?:\.\d+)?)')
DURATION = pattern('[itemprop="duration"], .duration, .runtime', r'(\d+:\d+|\d+\s*(?:min|menit))')

# Server names worth keeping on series episode pages
EPISODE_SERVER_NAMES = ("GANTI PLAYER", "TURBOVIP", "CAST", "HYDRAX", "P2P")
SERVER_DATA_SELECTOR = "[data-url], [data-video], [data-src]"
NON_SERVER_TAGS = ("img", "iframe", "script", "source", "video")


def release_year(slug: str) -> Optional[str]:
    match = YEAR_SUFFIX.search(slug)
    return match.group(1) if match else None


def series_episode_slug(series_slug: str, season: int, episode: int) -> str:
    """Episode slug on the series site, e.g. ``dark-season-1-episode-2-2017``."""
    year = release_year(series_slug)
    base = series_slug[:-len(year) - 1] if year else series_slug
    return f"{base}-season-{season}-episode-{episode}" + (f"-{year}" if year else "")


class Lk21Parser:
    """Parser for lk21 and its series site."""

    def __init__(self, base_url: str = "https://tv8.lk21official.cc", series_url: str = "https://tv3.nontondrama.my"):
        self.base_url = base_url.rstrip('/')
        self.series_url = series_url.rstrip('/')
        self._host = urlparse(self.base_url).netloc

    def film_url(self, slug: str) -> str:
        return f"{self.base_url}/{slug}"

    def film_slug(self, href: str) -> str:
        """Single-segment path of an on-site link, or empty."""
        parsed = urlparse(href or "")
        if parsed.netloc and parsed.netloc != self._host:
            return ""
        slug = parsed.path.strip("/")
        if "/" in slug or len(slug) < 3:
            return ""
        return slug

    def _film_cards(
        self,
        doc: Tag,
        limit: int,
        exclude: Optional[str] = None,
        require_image: bool = True,
        require_year: bool = False,
        genre: Optional[str] = None,
    ) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for link in doc.select("a[href]"):
            if len(items) >= limit:
                break

            image = link.select_one("img")
            if image is None and require_image:
                continue

            href = get_attr(link, "href")
            if any(path in href for path in SKIPPED_PATHS):
                continue
            if exclude and exclude in href:
                continue

            title = get_attr(link, "title") or (get_attr(image, "alt") if image is not None else "")
            slug = self.film_slug(href)
            if len(title) < 3 or not slug or slug in seen:
                continue
            if require_year and not release_year(slug):
                continue
            seen.add(slug)

            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=title,
                source=SOURCE,
                content_type=ContentType.FILM,
                poster=CARD_POSTER(link),
                type="Film",
                genres=[genre] if genre else [],
                url=self.film_url(slug),
            ))

        return items

    def parse_listing(self, html: str, page: int = 1, genre: Optional[str] = None) -> PagedResult[CatalogItem]:
        """
        Parse a paginated film listing.

        A next page exists when the "dari N total halaman" counter is ahead
        of ``page`` or the page came back full.
        """
        doc = BeautifulSoup(html, 'html.parser')
        items = self._film_cards(doc, PAGE_SIZE, genre=genre)

        match = TOTAL_PAGES.search(doc.get_text(" "))
        total_pages = int(match.group(1)) if match else 0
        has_next = total_pages > page or len(items) >= FULL_PAGE

        logger.debug(f"Listing page {page}: {len(items)} films, {total_pages} pages")
        return PagedResult[CatalogItem](data=items, has_next=has_next)

    def parse_trending(self, html: str) -> PagedResult[CatalogItem]:
        """Films featured anywhere on the home page."""
        doc = BeautifulSoup(html, 'html.parser')
        items = self._film_cards(doc, TRENDING_SIZE, require_image=False, require_year=True)
        return PagedResult[CatalogItem](data=items, has_next=False)

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        items = self._film_cards(doc, limit=100)
        return PagedResult[CatalogItem](data=items, has_next=len(items) >= FULL_PAGE)

    @staticmethod
    def _synopsis(doc: Tag) -> str:
        longest = ""
        for element in doc.select(SYNOPSIS_SELECTOR):
            value = TextCleaner.clean(element.get_text(" ", strip=True))
            if len(value) > len(longest):
                longest = value
        return longest or META_SYNOPSIS(doc)

    @staticmethod
    def _trailer(doc: Tag) -> Optional[str]:
        frame = doc.select_one('div.trailer-series iframe[src*="youtube"], iframe[src*="youtube.com/embed"]')
        match = YOUTUBE_EMBED.search(get_attr(frame, "src")) if frame is not None else None
        return f"https://www.youtube.com/watch?v={match.group(1)}" if match else None

    def parse_detail(self, html: str, slug: str) -> ContentDetail:
        """
        Parse a film page.

        The film is its own single unit so it can be streamed like an episode.
        """
        doc = BeautifulSoup(html, 'html.parser')
        title = DETAIL_TITLE(doc).split("|")[0].strip() or TextCleaner.title_from_slug(slug)
        directors = texts(doc, 'a[href*="/director/"]')
        countries = texts(doc, 'a[href*="/country/"]')
        rating = RATING(doc)

        return ContentDetail(
            id=slug,
            slug=slug,
            title=title,
            source=SOURCE,
            content_type=ContentType.FILM,
            poster=DETAIL_POSTER(doc),
            synopsis=self._synopsis(doc),
            type="Film",
            rating=rating,
            score=rating,
            duration=DURATION(doc),
            released=release_year(slug),
            genres=texts(doc, 'a[href*="/genre/"]')[:5],
            cast=texts(doc, 'a[href*="/artist/"]')[:10],
            director=directors[-1] if directors else None,
            country=countries[-1] if countries else None,
            trailer_url=self._trailer(doc),
            units=[Unit(id=slug, slug=slug, source=SOURCE, number="1", title=title, url=self.film_url(slug))],
            related=self._film_cards(doc, RELATED_SIZE, exclude=slug),
            url=self.film_url(slug),
        )

    @staticmethod
    def total_seasons(html: str) -> int:
        """Season count from the "Season X dari Y" label; 0 when the page is not a series."""
        match = SEASON_TOTAL.search(BeautifulSoup(html, 'html.parser').get_text(" "))
        return int(match.group(1)) if match else 0

    def parse_season_units(self, html: str, series_slug: str, season: int) -> List[Unit]:
        """Episodes of one season from the numbered episode buttons."""
        doc = BeautifulSoup(html, 'html.parser')
        numbers = set()

        for link in doc.select("a"):
            label = link.get_text(strip=True)
            if not EPISODE_BUTTON.match(label):
                continue
            number = int(label)
            in_season = f"-season-{season}-episode-" in get_attr(link, "href")
            if in_season or number <= 50:
                numbers.add(number)

        units = []
        for number in sorted(numbers):
            unit_slug = series_episode_slug(series_slug, season, number)
            units.append(Unit(
                id=unit_slug,
                slug=unit_slug,
                source=SOURCE,
                number=str(number),
                title=f"Season {season} Episode {number}",
                url=f"{self.series_url}/{unit_slug}",
            ))
        return units

    def parse_series(self, html: str, slug: str, seasons: int, units: Sequence[Unit]) -> ContentDetail:
        """Series record from its first episode page and the collected episodes."""
        doc = BeautifulSoup(html, 'html.parser')
        title = SEASON_SUFFIX.sub("", DETAIL_TITLE(doc).split("|")[0]).strip()

        return ContentDetail(
            id=slug,
            slug=slug,
            title=title or TextCleaner.title_from_slug(slug),
            source=SOURCE,
            content_type=ContentType.SERIES,
            poster=DETAIL_POSTER(doc),
            type="Series",
            released=release_year(slug),
            season=f"{seasons} seasons",
            total_units=str(len(units)),
            units=list(units),
            trailer_url=self._trailer(doc),
            url=f"{self.series_url}/{slug}",
        )

    def parse_servers(self, html: str, episode: bool = False) -> List[StreamServer]:
        """
        Player servers from a rendered film or episode page.

        Series episode pages carry many unrelated links, so only the known
        player names are kept there.
        """
        doc = BeautifulSoup(html, 'html.parser')
        collector = ServerCollector(SOURCE)

        main = doc.select_one("#main-player")
        if main is not None:
            collector.add(get_attr(main, "src"), "GANTI PLAYER", DEFAULT_QUALITY)

        if episode and not len(collector):
            for frame in doc.select('iframe[src*="player"], iframe[src*="embed"]'):
                collector.add(get_attr(frame, "src"), "PLAYER", DEFAULT_QUALITY)

        for link in doc.select('a[href*="playeriframe"]'):
            collector.add(get_attr(link, "href"), link.get_text(strip=True) or "Server", DEFAULT_QUALITY)

        if episode:
            for element in doc.select(SERVER_DATA_SELECTOR):
                label = element.get_text(strip=True)
                if element.name in NON_SERVER_TAGS or not any(name in label.upper() for name in EPISODE_SERVER_NAMES):
                    continue
                url = get_attr(element, "data-url") or get_attr(element, "data-src") or get_attr(element, "data-video")
                collector.add(url, label, DEFAULT_QUALITY)
            return collector.servers

        for link in doc.select('a[href*="embed"], a[href*="player"]'):
            href = get_attr(link, "href")
            if href.startswith("http"):
                collector.add(href, link.get_text(strip=True) or "Server", DEFAULT_QUALITY)
        return collector.servers

    def parse_static_servers(self, html: str) -> List[StreamServer]:
        """Inline player frames only, for when the page cannot be rendered."""
        collector = ServerCollector(SOURCE)
        StreamResolver(SOURCE).collect_frames(BeautifulSoup(html, 'html.parser'), collector)
        return collector.servers

    def parse_stream(self, html: str, slug: str, servers: Sequence[StreamServer]) -> EpisodeDetail:
        doc = BeautifulSoup(html, 'html.parser')
        title = DETAIL_TITLE(doc).split("|")[0].strip()
        match = SERIES_EPISODE.match(slug)

        return EpisodeDetail(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=SEASON_SUFFIX.sub("", title).strip() if match else title,
            episode_number=match.group("episode") if match else "",
            servers=list(servers),
        )


# Export parser
__all__ = ["Lk21Parser", "SOURCE", "SERIES_EPISODE", "series_episode_slug", "release_year"]
