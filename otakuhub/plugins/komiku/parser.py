"""
Komiku Markup Parser

This module turns komiku.cc pages into comic records. Listing pages are
plain link grids, so every ``/komik/<slug>`` anchor that is not a chapter
link becomes a card. Detail pages are parsed from the rendered DOM after
the chapter list has been fully expanded.
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import CatalogItem, ChapterContent, ContentDetail, ContentType, PagedResult, Unit
from otakuhub.plugins.common.extraction import FieldChain, ascending_units, attr, has_next_page, slug_from_path, text, texts
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


SOURCE = "komiku"
COMIC_TYPES = ("manga", "manhwa", "manhua")
LATEST_LIMIT = 24

LOAD_MORE_KEYWORDS = ("tampilkan", "lebih", "load", "more")

LIST_NEXT = (".next", 'a[rel="next"]')
LIST_NEXT_TEXTS = ("NEXT", "Next")

CARD_TITLE = FieldChain(text("h3"), attr(None, "title"))
CARD_POSTER = FieldChain(attr("img", "src", "data-src"))
DETAIL_POSTER = FieldChain(attr('img[src*="komiku"]', "src"), attr('img[alt*="komik"]', "src"))

SKIPPED_CHAPTER_LABELS = ("awal", "pertama", "first")
UPDATED_PATTERN = re.compile(r'(\d+)\s*(menit|jam|hari|bulan|tahun)', re.IGNORECASE)
CHAPTER_NUMBER_PATTERN = re.compile(r'-chapter-(\d+(?:\.\d+)?)', re.IGNORECASE)
IMAGE_EXCLUDES = ("logo", "icon", "avatar")
MIN_IMAGE_SIDE = 100


def _span_value(doc: Tag, label: str) -> str:
    """
    Value of a "Label:" span, read from its next sibling span or inline.

    Args:
        doc: Rendered detail page
        label: Lowercase label without the colon

    Returns:
        The value, or an empty string
    """
    for span in doc.select("span"):
        content = span.get_text(strip=True)
        lowered = content.lower()
        if lowered not in (label, f"{label}:") and not lowered.startswith(f"{label}:"):
            continue

        sibling = span.find_next_sibling()
        if sibling is not None and lowered in (label, f"{label}:"):
            return TextCleaner.clean(sibling.get_text(" ", strip=True))
        inline = content.split(":", 1)[1] if ":" in content else ""
        if inline.strip():
            return inline.strip()
    return ""


def _is_page_image(img: Tag) -> bool:
    for side in ("width", "height"):
        value = get_attr(img, side)
        if value.isdigit() and int(value) < MIN_IMAGE_SIDE:
            return False
    return True


class KomikuParser:
    """Parser for komiku markup."""

    def __init__(self, base_url: str = "https://komiku.cc"):
        self.base_url = base_url.rstrip('/')

    def comic_url(self, slug: str) -> str:
        return f"{self.base_url}/komik/{slug}"

    def _parse_cards(self, doc: Tag, comic_type: Optional[str] = None) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for link in doc.select('a[href*="/komik/"]'):
            href = get_attr(link, "href")
            if "-chapter-" in href:
                continue

            slug = slug_from_path(href, "komik")
            if not slug or slug in seen:
                continue
            seen.add(slug)

            title = CARD_TITLE(link)
            poster = CARD_POSTER(link)
            if not title and not poster:
                continue

            latest = ""
            for span in link.select("span"):
                label = span.get_text(strip=True)
                if "chapter" in label.lower() or label.isdigit():
                    latest = label

            items.append(CatalogItem(
                id=slug,
                slug=slug,
                title=title or TextCleaner.title_from_slug(slug),
                source=SOURCE,
                content_type=ContentType.COMIC,
                poster=poster,
                type=comic_type.capitalize() if comic_type else None,
                latest_unit=latest or None,
                url=self.comic_url(slug),
            ))

        return items

    def parse_latest(self, html: str) -> PagedResult[CatalogItem]:
        """Home page grid, capped; the home page has no pagination."""
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](data=self._parse_cards(doc)[:LATEST_LIMIT], has_next=False)

    def parse_list(self, html: str, comic_type: Optional[str] = None) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, comic_type),
            has_next=has_next_page(doc, LIST_NEXT, LIST_NEXT_TEXTS),
        )

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](data=self._parse_cards(doc), has_next=False)

    def parse_chapters(self, doc: Tag) -> List[Unit]:
        units: List[Unit] = []
        seen = set()

        for link in doc.select('a[href*="-chapter-"]'):
            label = TextCleaner.clean(link.get_text(" ", strip=True))
            if any(skip in label.lower() for skip in SKIPPED_CHAPTER_LABELS):
                continue

            parent_class = " ".join(link.parent.get("class", [])) if link.parent is not None else ""
            if "btn" in parent_class or "button" in parent_class:
                continue

            href = URLHelper.make_absolute(get_attr(link, "href"), self.base_url)
            if href in seen:
                continue
            seen.add(href)

            number_match = CHAPTER_NUMBER_PATTERN.search(href)
            if not number_match:
                continue

            updated = UPDATED_PATTERN.search(label)
            chapter_slug = URLHelper.last_segment(href)
            if not chapter_slug:
                continue
            units.append(Unit(
                id=chapter_slug,
                slug=chapter_slug,
                source=SOURCE,
                number=number_match.group(1),
                title=f"Chapter {number_match.group(1)}",
                url=href,
                date=f"{updated.group(1)} {updated.group(2)}" if updated else None,
            ))

        return ascending_units(units)

    def parse_detail(self, html: str, slug: str) -> ContentDetail:
        """
        Parse a rendered comic page.

        Args:
            html: DOM snapshot taken after expanding the chapter list
            slug: Comic slug

        Returns:
            ContentDetail with chapters ascending by numeric value
        """
        doc = BeautifulSoup(html, 'html.parser')

        comic_type = _span_value(doc, "type")
        if comic_type.lower() not in COMIC_TYPES:
            comic_type = "Manga"
        released = re.search(r'\d{4}', _span_value(doc, "rilis"))

        synopsis = next(
            (p.get_text(strip=True) for p in doc.select("p") if len(p.get_text(strip=True)) > 100),
            "",
        )

        return ContentDetail(
            id=slug,
            slug=slug,
            title=text("h1")(doc) or TextCleaner.title_from_slug(slug),
            source=SOURCE,
            content_type=ContentType.COMIC,
            poster=DETAIL_POSTER(doc),
            type=comic_type.capitalize(),
            author=_span_value(doc, "author") or None,
            released=released.group(0) if released else None,
            synopsis=synopsis,
            genres=texts(doc, 'a[href*="/genre/"]'),
            units=self.parse_chapters(doc),
            url=self.comic_url(slug),
        )

    def _nav_slug(self, doc: Tag, label: str, rel: str) -> Optional[str]:
        for link in doc.select('a[href*="-chapter-"]'):
            if label in link.get_text(" ", strip=True):
                return URLHelper.last_segment(get_attr(link, "href")) or None
        link = doc.select_one(f'a[rel="{rel}"]')
        if link is None:
            return None
        return URLHelper.last_segment(get_attr(link, "href")) or None

    def parse_chapter(self, html: str, slug: str) -> ChapterContent:
        """
        Parse a reader page into its page images and neighbours.

        Page images are taken from any ``img`` whose URL looks like chapter
        content, skipping logos, icons and small thumbnails; reader
        containers are used when that finds nothing.
        """
        doc = BeautifulSoup(html, 'html.parser')
        title = text("h1")(doc) or slug

        match = (re.search(r'(.+?)\s*[-–]\s*Chapter\s*(\d+(?:\.\d+)?)', title, re.IGNORECASE)
                 or re.search(r'(.+?)-chapter-(\d+(?:\.\d+)?)', slug, re.IGNORECASE))

        images: List[str] = []
        for img in doc.select("img"):
            src = get_attr(img, "src") or get_attr(img, "data-src")
            if not src or not any(marker in src for marker in ("img", "chapter", "komiku")):
                continue
            if any(marker in src for marker in IMAGE_EXCLUDES) or not _is_page_image(img):
                continue
            if src not in images:
                images.append(src)

        if not images:
            for img in doc.select('[id*="readerarea"] img, .chapter-content img, .reading-content img, #chapter-content img'):
                src = get_attr(img, "src") or get_attr(img, "data-src")
                if src and src not in images:
                    images.append(src)

        return ChapterContent(
            source=SOURCE,
            slug=slug,
            title=title,
            parent_title=match.group(1).replace("-", " ").strip() if match else "",
            chapter_number=match.group(2) if match else "",
            images=images,
            prev_slug=self._nav_slug(doc, "Prev", "prev"),
            next_slug=self._nav_slug(doc, "Next", "next"),
        )


# Export parser
__all__ = ["KomikuParser", "COMIC_TYPES", "LOAD_MORE_KEYWORDS", "SOURCE"]
