"""
MeioNovel Markup Parser

This module turns meionovels.com pages (a WordPress Madara theme) into
novel records. Chapter lists come from several places depending on how the
theme was configured: inline in the page, from the ``manga_get_chapters``
admin-ajax fragment, or only after client-side rendering. The same chapter
item parser is used for all of them.
"""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from otakuhub.core.models import CatalogItem, ChapterContent, ContentDetail, ContentType, PagedResult, Unit
from otakuhub.plugins.common.extraction import FieldChain, attr, has_next_page, slug_from_path, text, texts
from otakuhub.plugins.common.utils import TextCleaner, get_attr


logger = logging.getLogger(__name__)


SOURCE = "meionovel"
DEFAULT_CONTENT = "Konten tidak dapat dimuat."
DEFAULT_VARIANT = "MTL"

LIST_ITEMS = ".page-item-detail, .manga, article.bs"
GENRE_ITEMS = ".page-item-detail, .manga"
SEARCH_CONTAINERS = (
    ".c-tabs-item__content",
    ".search-wrap .row",
    ".tab-content-wrap .c-tabs-item__content",
    ".c-blog__item",
    ".manga-item",
    ".page-item-detail",
    ".item-thumb",
    "article.search-result",
)

LIST_NEXT = (".nav-previous a", ".next", "a.nextpostslink", ".pagination .next")

CHAPTER_ITEMS = "li.wp-manga-chapter, .wp-manga-chapter, .version-chap li"
CHAPTER_COUNT_SELECTOR = "li.wp-manga-chapter, .wp-manga-chapter"
SHOW_MORE_SELECTORS = ("span.content-readmore", ".content-readmore", ".btn-link.content-readmore", "span.btn-link")
SHOW_MORE_KEYWORDS = ("show more", "show all", "tampilkan")
RELATED_LIMIT = 10

CARD_TITLE = FieldChain(text(".post-title h3 a"), text(".post-title a"), text("h3 a"), attr("a", "title"))
CARD_POSTER = FieldChain(attr("img", "src", "data-src", "data-lazy-src"))
CARD_LATEST = FieldChain(text(".chapter-item .chapter a"), text(".list-chapter a"))

DETAIL_TITLE = FieldChain(text(".post-title h1"), text("h1.entry-title"))
DETAIL_POSTER = FieldChain(attr(".summary_image img", "src", "data-src", "data-lazy-src"),
                           attr(".thumb img", "src", "data-src", "data-lazy-src"))

CHAPTER_TITLE = FieldChain(text(".entry-title"), text("h1.text-center"), text(".chapter-title"))
CHAPTER_PARENT = FieldChain(text(".parent-title a"), text(".breadcrumb li:nth-child(2) a"), text('a[href*="/novel/"]'))
PREV_CHAPTER = FieldChain(attr(".prev_page a", "href"), attr(".nav-previous a", "href"), attr('a[rel="prev"]', "href"))
NEXT_CHAPTER = FieldChain(attr(".next_page a", "href"), attr(".nav-next a", "href"), attr('a[rel="next"]', "href"))

CHAPTER_LINK_PATTERN = re.compile(r'/mtl/|/htl/|chapter[-_]?\d+|/ch-?\d+', re.IGNORECASE)
CHAPTER_TEXT_PATTERN = re.compile(r'chapter\s*\d+', re.IGNORECASE)


def chapter_number(label: str) -> str:
    return (TextCleaner.extract_number(label, r'Chapter\s*(\d+)')
            or TextCleaner.extract_number(label, r'(\d+)'))


def chapter_variant(*labels: str) -> str:
    """HTL (human translation) when any label says so, otherwise MTL."""
    return "HTL" if any("htl" in (label or "").lower() for label in labels) else DEFAULT_VARIANT


def parse_post_id(doc: Tag) -> str:
    """
    Numeric post id of a novel page, needed for the chapter list request.

    Tried in order: rating widget attributes, the ``manga_id`` input, inline
    scripts mentioning ``manga_id``, then any ``post_id``/``data-id`` in the
    page source.
    """
    for element in doc.select(".rating-post-id, [data-id]"):
        value = get_attr(element, "value") or get_attr(element, "data-id")
        if value:
            return value

    element = doc.select_one('input[name="manga_id"]')
    if element is not None and get_attr(element, "value"):
        return get_attr(element, "value")

    for script in doc.select("script"):
        match = re.search(r'manga_id["\s:]+(\d+)', script.get_text())
        if match:
            return match.group(1)

    source = str(doc)
    match = (re.search(r'post[_-]?id["\s:]+["\']?(\d+)', source, re.IGNORECASE)
             or re.search(r'data-id["\s=]+["\']?(\d+)', source, re.IGNORECASE))
    return match.group(1) if match else ""


class MeioNovelParser:
    """Parser for meionovel markup."""

    def __init__(self, base_url: str = "https://meionovels.com"):
        self.base_url = base_url.rstrip('/')

    def novel_url(self, slug: str) -> str:
        return f"{self.base_url}/novel/{slug}/"

    @staticmethod
    def chapter_slug(href: str, novel_slug: str) -> str:
        """Chapter path below the novel, e.g. ``mtl/chapter-12``; empty if outside it."""
        marker = f"/novel/{novel_slug}/"
        path = urlparse(href or "").path
        index = path.find(marker)
        if index < 0:
            return ""
        return path[index + len(marker):].strip("/")

    def _card(self, href: str, title: str, poster: str, **fields) -> Optional[CatalogItem]:
        slug = slug_from_path(href, "novel")
        if not slug or not title:
            return None
        return CatalogItem(
            id=slug,
            slug=slug,
            title=title,
            source=SOURCE,
            content_type=ContentType.NOVEL,
            poster=poster,
            url=href,
            **fields,
        )

    def _parse_cards(self, doc: Tag, selector: str, with_badge: bool = False) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        seen = set()

        for card in doc.select(selector):
            link = card.select_one("a")
            href = get_attr(link, "href") if link else ""
            item = self._card(
                href,
                CARD_TITLE(card),
                CARD_POSTER(card),
                latest_unit=CARD_LATEST(card) or None,
                type=(text(".manga-title-badges")(card) or DEFAULT_VARIANT) if with_badge else None,
            )
            if item is None or item.slug in seen:
                continue
            seen.add(item.slug)
            items.append(item)

        return items

    def parse_listing(self, html: str, with_badge: bool = False) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, LIST_ITEMS, with_badge),
            has_next=has_next_page(doc, LIST_NEXT),
        )

    def parse_genre(self, html: str) -> PagedResult[CatalogItem]:
        doc = BeautifulSoup(html, 'html.parser')
        return PagedResult[CatalogItem](
            data=self._parse_cards(doc, GENRE_ITEMS),
            has_next=has_next_page(doc, (".nav-previous a", ".next")),
        )

    def parse_search(self, html: str) -> PagedResult[CatalogItem]:
        """
        Parse search results.

        Result layouts differ between theme versions; the first container
        selector yielding results wins. Bare novel links are used when none
        does.
        """
        doc = BeautifulSoup(html, 'html.parser')
        items: List[CatalogItem] = []
        seen = set()

        for selector in SEARCH_CONTAINERS:
            for container in doc.select(selector):
                link = container.select_one(".post-title a, h3 a, h4 a, .item-title a, a.link")
                if link is None:
                    continue
                href = get_attr(link, "href")
                title = TextCleaner.clean(link.get_text(" ", strip=True)) or get_attr(link, "title")
                item = self._card(href, title, CARD_POSTER(container))
                if item is None or item.slug in seen:
                    continue
                seen.add(item.slug)
                items.append(item)
            if items:
                break

        if not items:
            for link in doc.select('a[href*="/novel/"]'):
                href = get_attr(link, "href")
                title = TextCleaner.clean(link.get_text(" ", strip=True)) or get_attr(link, "title")
                if len(title) <= 3 or "novel-genre" in href or "novel-tag" in href:
                    continue
                parent = link.find_parent(["article", "div"])
                item = self._card(href, title, CARD_POSTER(parent) if parent is not None else "")
                if item is None or item.slug in seen:
                    continue
                seen.add(item.slug)
                items.append(item)

        return PagedResult[CatalogItem](data=items, has_next=has_next_page(doc, LIST_NEXT[:3]))

    def _unit(self, href: str, chapter_slug: str, label: str, variant: str, date: Optional[str] = None) -> Unit:
        return Unit(
            id=chapter_slug,
            slug=chapter_slug,
            source=SOURCE,
            number=chapter_number(label),
            title=label,
            url=href,
            date=date or None,
            variant=variant,
        )

    def parse_chapter_items(self, doc: Tag, novel_slug: str, selector: str = CHAPTER_ITEMS) -> List[Unit]:
        """
        Parse Madara chapter list items, in markup order.

        Args:
            doc: Novel page, rendered DOM or admin-ajax fragment
            novel_slug: Slug the chapters must belong to
            selector: Chapter item selector

        Returns:
            Chapters de-duplicated by slug
        """
        units: List[Unit] = []
        seen = set()

        for item in doc.select(selector):
            link = item.select_one("a")
            if link is None:
                continue
            href = get_attr(link, "href")
            label = TextCleaner.clean(link.get_text(" ", strip=True))
            chapter_slug = self.chapter_slug(href, novel_slug)
            if not label or not chapter_slug or chapter_slug in seen:
                continue
            seen.add(chapter_slug)
            date = text(".chapter-release-date i")(item) or text("time")(item) or text(".chapterdate")(item)
            units.append(self._unit(href, chapter_slug, label, chapter_variant(label, chapter_slug), date))

        return units

    def parse_chapter_links(self, doc: Tag, novel_slug: str) -> List[Unit]:
        """Chapters from any link under the novel path that looks like a chapter."""
        units: List[Unit] = []
        seen = set()

        for link in doc.select(f'a[href*="{novel_slug}/"]'):
            href = get_attr(link, "href")
            label = TextCleaner.clean(link.get_text(" ", strip=True))
            if not label or len(label) >= 100:
                continue
            if not CHAPTER_LINK_PATTERN.search(href) and not CHAPTER_TEXT_PATTERN.search(label):
                continue
            chapter_slug = self.chapter_slug(href, novel_slug)
            if not chapter_slug or chapter_slug in seen:
                continue
            seen.add(chapter_slug)
            units.append(self._unit(href, chapter_slug, label, chapter_variant(label, chapter_slug)))

        return units

    def parse_read_buttons(self, doc: Tag, novel_slug: str) -> List[Unit]:
        """First and last chapter from the "Read First"/"Read Last" buttons."""
        def button(label: str, selectors: Iterable[str]) -> str:
            for link in doc.select("a"):
                if label in link.get_text(" ", strip=True) and get_attr(link, "href"):
                    return get_attr(link, "href")
            for selector in selectors:
                element = doc.select_one(selector)
                if element is not None and get_attr(element, "href"):
                    return get_attr(element, "href")
            return ""

        first = button("Read First", (
            ".btn-read-first a", "a.btn-read-first", 'a[class*="first"]',
            f'a[href*="{novel_slug}"][href*="chapter-1"]',
            f'a[href*="{novel_slug}/htl/"]', f'a[href*="{novel_slug}/mtl/"]',
        ))
        last = button("Read Last", (".last_chapter a", ".btn-read-last a", "a.btn-read-last", 'a[class*="last"]'))

        units: List[Unit] = []
        first_slug = self.chapter_slug(first, novel_slug)
        if first_slug:
            number = TextCleaner.extract_number(first_slug, r'chapter[-_]?(\d+)') or "1"
            units.append(self._unit(first, first_slug, f"Chapter {number}", chapter_variant(first_slug)))

        last_slug = self.chapter_slug(last, novel_slug)
        if last_slug and last != first and last_slug != first_slug:
            number = TextCleaner.extract_number(last_slug, r'(\d+)') or "Latest"
            units.append(self._unit(last, last_slug, f"Chapter {number} (Latest)", chapter_variant(last_slug)))

        return units

    def parse_rendered_chapters(self, html: str, novel_slug: str) -> List[Unit]:
        doc = BeautifulSoup(html, 'html.parser')
        return self.parse_chapter_items(doc, novel_slug) or self.parse_chapter_links(doc, novel_slug)

    def parse_fragment_chapters(self, html: str, novel_slug: str) -> List[Unit]:
        doc = BeautifulSoup(html or "", 'html.parser')
        return self.parse_chapter_items(doc, novel_slug, CHAPTER_COUNT_SELECTOR)

    def _summary_value(self, doc: Tag, *labels: str) -> str:
        for item in doc.select(".post-content_item"):
            heading = (text(".summary-heading")(item) or text("h5")(item) or "").lower()
            value = text(".summary-content")(item)
            if value and any(label in heading for label in labels):
                return value
        return ""

    def parse_related(self, doc: Tag, novel_slug: str) -> List[CatalogItem]:
        related: List[CatalogItem] = []
        seen = {novel_slug}

        for item in doc.select(".related-manga-container .item"):
            link = item.select_one(".item-thumb a, .post-title a")
            href = get_attr(link, "href") if link else ""
            title = (text(".post-title h5 a")(item) or text(".item-details .post-title a")(item)
                     or (get_attr(link, "title") if link else ""))
            card = self._card(href, title, FieldChain(attr(".item-thumb img", "src", "data-src"))(item))
            if card is not None and card.slug not in seen:
                seen.add(card.slug)
                related.append(card)

        if related:
            return related

        for item in doc.select(".sidebar .c-blog__item, .c-sidebar .slider__item, .widget .page-item-detail"):
            link = item.select_one("a")
            href = get_attr(link, "href") if link else ""
            title = (text(".post-title a")(item) or text(".name")(item) or text("h5")(item)
                     or (get_attr(link, "title") if link else ""))
            card = self._card(href, title, CARD_POSTER(item))
            if card is not None and card.slug not in seen and len(related) < RELATED_LIMIT:
                seen.add(card.slug)
                related.append(card)

        return related

    def parse_detail(self, doc: Tag, slug: str) -> ContentDetail:
        """
        Parse a novel page with its inline chapters.

        Chapters fetched or rendered later are merged by the adapter.

        Args:
            doc: Parsed novel page
            slug: Novel slug

        Returns:
            ContentDetail with whatever chapters the page itself lists
        """
        synopsis = "\n\n".join(texts(doc, ".summary__content p, .description-summary p, .manga-excerpt p"))
        alternative = self._summary_value(doc, "alternative", "alt")

        return ContentDetail(
            id=slug,
            slug=slug,
            title=DETAIL_TITLE(doc) or TextCleaner.title_from_slug(slug),
            source=SOURCE,
            content_type=ContentType.NOVEL,
            poster=DETAIL_POSTER(doc),
            synopsis=synopsis,
            author=text(".author-content a")(doc) or text('a[href*="novel-author"]')(doc),
            genres=texts(doc, '.genres-content a, a[href*="novel-genre"]'),
            tags=texts(doc, '.tags-content a, a[href*="novel-tag"]'),
            status=self._summary_value(doc, "status") or None,
            released=text('a[href*="novel-release"]')(doc),
            alternative_titles=[alternative] if alternative else [],
            units=self.parse_chapter_items(doc, slug),
            related=self.parse_related(doc, slug),
            url=self.novel_url(slug),
        )

    @staticmethod
    def _container_text(container: Tag) -> str:
        parts: List[str] = []
        for element in container.find_all(["p", "br"]):
            if element.name == "br":
                parts.append("\n")
                continue
            paragraph = element.get_text(strip=True)
            if paragraph:
                parts.append(paragraph + "\n\n")
        return "".join(parts).strip()

    def parse_chapter(self, html: str, novel_slug: str, chapter_slug: str) -> ChapterContent:
        """
        Parse a chapter reader page.

        Paragraphs are separated by blank lines and ``<br>`` becomes a line
        break. The container's whole text is used when it has no paragraphs.
        """
        doc = BeautifulSoup(html, 'html.parser')
        title = CHAPTER_TITLE(doc)

        # Containers nest, so the first one yielding text wins
        content = ""
        containers = doc.select(".text-left, .reading-content, .entry-content, .chapter-content")
        for container in containers:
            content = self._container_text(container)
            if content:
                break

        if not content and containers:
            content = containers[0].get_text(strip=True)

        return ChapterContent(
            source=SOURCE,
            slug=chapter_slug,
            title=title,
            parent_title=CHAPTER_PARENT(doc),
            chapter_number=TextCleaner.extract_number(title, r'Chapter\s*(\d+)'),
            text=content or DEFAULT_CONTENT,
            prev_slug=self.chapter_slug(PREV_CHAPTER(doc), novel_slug) or None,
            next_slug=self.chapter_slug(NEXT_CHAPTER(doc), novel_slug) or None,
        )


# Export parser
__all__ = [
    "MeioNovelParser",
    "parse_post_id",
    "chapter_number",
    "chapter_variant",
    "CHAPTER_COUNT_SELECTOR",
    "SHOW_MORE_SELECTORS",
    "SHOW_MORE_KEYWORDS",
    "DEFAULT_CONTENT",
    "SOURCE",
]
