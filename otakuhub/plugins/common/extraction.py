"""
Extraction Strategy Chain - Ordered selector fallbacks and slug heuristics.

Every origin renders the same logical field (title, poster, episode label)
under different markup depending on its template version. A field is
described as an ordered list of strategies, each a pure function
``(node) -> Optional[str]``; the first strategy producing a non-empty,
trimmed string wins and an exhausted chain yields the field's default.

This module also holds the slug derivation heuristics and the small
page-level signals (next-page affordance, quality hint, "Key: Value" info
blocks) shared by all adapters.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from bs4 import Tag

from otakuhub.core.models import DEFAULT_QUALITY, Unit, unit_sort_key
from otakuhub.plugins.common.utils import TextCleaner, URLHelper, get_attr


logger = logging.getLogger(__name__)


Strategy = Callable[[Tag], Optional[str]]

NEXT_PAGE_SELECTORS = (
    ".hpage .r",
    ".pagination .next",
    ".next.page-numbers",
    "a.next",
    ".nextpostslink",
)

UNIT_SUFFIX_PATTERNS = (
    r'-subtitle-indonesia$',
    r'-sub-indo$',
    r'-episode-\d+.*$',
)


def text(selector: str) -> Strategy:
    """Strategy: whitespace-collapsed text of the first element matching ``selector``."""
    def strategy(node: Tag) -> Optional[str]:
        element = node.select_one(selector)
        if element is None:
            return None
        return TextCleaner.clean(element.get_text(" ", strip=True)) or None
    strategy.__name__ = f"text({selector})"
    return strategy


def attr(selector: Optional[str], *names: str) -> Strategy:
    """
    Strategy: first non-empty attribute among ``names`` on the first match.

    With ``selector=None`` the attributes are read from the node itself.
    Inline ``data:`` URIs (lazy-load placeholders) are treated as empty.
    """
    def strategy(node: Tag) -> Optional[str]:
        element = node if selector is None else node.select_one(selector)
        if element is None:
            return None
        for name in names:
            value = get_attr(element, name)
            if value and not value.startswith("data:"):
                return value
        return None
    strategy.__name__ = f"attr({selector}, {', '.join(names)})"
    return strategy


def pattern(selector: str, regex: str, group: int = 1) -> Strategy:
    """Strategy: regex group found in the text of the first match."""
    compiled = re.compile(regex, re.IGNORECASE)

    def strategy(node: Tag) -> Optional[str]:
        value = text(selector)(node)
        if not value:
            return None
        match = compiled.search(value)
        return match.group(group).strip() if match else None
    strategy.__name__ = f"pattern({selector}, {regex})"
    return strategy


def first_present(node: Optional[Tag], strategies: Iterable[Strategy], default: str = "") -> str:
    """
    Evaluate strategies in order and return the first non-empty result.

    Args:
        node: Document or element to evaluate against
        strategies: Ordered strategies, most reliable first
        default: Value used when every strategy comes up empty

    Returns:
        The first present value, trimmed, or ``default``
    """
    if node is None:
        return default

    for strategy in strategies:
        value = strategy(node)
        if value and value.strip():
            return value.strip()

    return default


class FieldChain:
    """A named, reusable strategy chain for one field."""

    def __init__(self, *strategies: Strategy, default: str = ""):
        self.strategies: Sequence[Strategy] = strategies
        self.default = default

    def __call__(self, node: Optional[Tag]) -> str:
        return first_present(node, self.strategies, self.default)

    def __repr__(self) -> str:
        names = ", ".join(getattr(s, "__name__", "?") for s in self.strategies)
        return f"FieldChain([{names}], default={self.default!r})"


def texts(node: Tag, selector: str) -> List[str]:
    """All non-empty texts for a selector, de-duplicated in document order."""
    values = (TextCleaner.clean(el.get_text(" ", strip=True)) for el in node.select(selector))
    return list(dict.fromkeys(value for value in values if value))


def slug_from_path(url: str, marker: str) -> str:
    """
    Slug following a path marker, e.g. ``/anime/<slug>/``.

    Args:
        url: Absolute or relative URL
        marker: Path segment preceding the slug (without slashes)

    Returns:
        The slug, or an empty string when the marker is absent
    """
    match = re.search(rf'/{re.escape(marker)}/([^/?#]+)', url or "")
    return match.group(1) if match else ""


def series_slug_from_unit(url_or_slug: str) -> str:
    """
    Derive the parent series slug from an episode URL or slug.

    Strips the localized subtitle marker and the episode indicator so an
    episode page and its series resolve to the same stable slug:
    ``some-series-name-episode-12-subtitle-indonesia`` -> ``some-series-name``.
    """
    slug = URLHelper.last_segment(url_or_slug) if "/" in (url_or_slug or "") else (url_or_slug or "")
    for suffix in UNIT_SUFFIX_PATTERNS:
        slug = re.sub(suffix, '', slug, flags=re.IGNORECASE)
    return slug


def has_next_page(
    node: Tag,
    selectors: Sequence[str] = NEXT_PAGE_SELECTORS,
    link_texts: Sequence[str] = (),
) -> bool:
    """
    Whether any next-page affordance is present.

    Args:
        node: Parsed listing page
        selectors: Selectors of pagination controls
        link_texts: Case-sensitive texts of a bare "next" link

    Returns:
        True when a control or link is found, independent of item count
    """
    if any(node.select_one(selector) is not None for selector in selectors):
        return True
    if link_texts:
        for link in node.select("a"):
            label = link.get_text(" ", strip=True)
            if any(text in label for text in link_texts):
                return True
    return False


def ascending_units(units: List[Unit], newest_first: bool = True) -> List[Unit]:
    """
    Order units ascending by number.

    Markup usually lists newest first, so the list is reversed before a
    stable numeric sort; labels without a number keep their relative order
    at the end.
    """
    ordered = list(reversed(units)) if newest_first else list(units)
    ordered.sort(key=lambda unit: unit_sort_key(unit.number))
    return ordered


def infer_quality(label: str) -> str:
    """Best-effort quality label from surrounding text."""
    label = label or ""
    if "720" in label:
        return "720p"
    if "1080" in label:
        return "1080p"
    return DEFAULT_QUALITY


def parse_info_pairs(nodes: Iterable[Tag]) -> Dict[str, str]:
    """
    Parse "Key: Value" info rows into a lowercase-keyed mapping.

    Rows without a colon or with an empty value are ignored; the first
    occurrence of a key wins.
    """
    info: Dict[str, str] = {}
    for node in nodes:
        row = TextCleaner.clean(node.get_text(" ", strip=True))
        if ":" not in row:
            continue
        key, _, value = row.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if key and value and key not in info:
            info[key] = value
    return info


def map_info(info: Mapping[str, str], aliases: Mapping[str, Sequence[str]]) -> Dict[str, str]:
    """
    Map source-specific info labels onto field names.

    Args:
        info: Output of :func:`parse_info_pairs`
        aliases: Field name to accepted labels, most specific first

    Returns:
        Field name to value for every field found
    """
    fields: Dict[str, str] = {}
    for field, labels in aliases.items():
        for label in labels:
            if info.get(label):
                fields[field] = info[label]
                break
    return fields


# Export extraction helpers
__all__ = [
    "Strategy",
    "FieldChain",
    "text",
    "attr",
    "pattern",
    "texts",
    "first_present",
    "slug_from_path",
    "series_slug_from_unit",
    "has_next_page",
    "ascending_units",
    "infer_quality",
    "parse_info_pairs",
    "map_info",
    "NEXT_PAGE_SELECTORS",
]
