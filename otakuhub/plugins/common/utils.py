"""
Plugin Utilities - Common utilities and helpers for source adapters.

This module provides utility classes that are commonly needed when writing
source adapters, including attribute access, URL handling and text cleanup.
"""

import re
import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import Tag


logger = logging.getLogger(__name__)


def get_attr(element: Tag, attr: str) -> str:
    """Attribute value as a stripped string; BeautifulSoup may return lists."""
    value = element.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    return value.strip() if isinstance(value, str) else ""


class URLHelper:
    """Utility class for URL manipulation and validation."""

    @staticmethod
    def is_absolute(url: str) -> bool:
        return bool(urlparse(url).netloc)

    @staticmethod
    def make_absolute(url: str, base_url: str) -> str:
        """Convert relative or protocol-relative URL to absolute."""
        if url.startswith("//"):
            return f"https:{url}"
        if URLHelper.is_absolute(url):
            return url
        return urljoin(base_url.rstrip('/') + '/', url.lstrip('/'))

    @staticmethod
    def last_segment(url: str) -> str:
        """Last non-empty path segment of a URL or path."""
        path = urlparse(url).path if "://" in url else url.split("?")[0]
        parts = [part for part in path.split('/') if part]
        return parts[-1] if parts else ""


class TextCleaner:
    """Utility class for cleaning and normalizing text content."""

    @staticmethod
    def clean(text: Optional[str]) -> str:
        """Collapse whitespace and trim."""
        if not text:
            return ""
        return re.sub(r'\s+', ' ', text).strip()

    @staticmethod
    def strip_episode_suffix(title: str) -> str:
        """
        Remove a trailing episode indicator from a title.

        Args:
            title: Raw title text, e.g. "Series Name Episode 12 Subtitle Indonesia"

        Returns:
            Title without the episode part
        """
        title = TextCleaner.clean(title)
        title = re.sub(r'\s*-?\s*Episode\s*\d+.*$', '', title, flags=re.IGNORECASE)
        return title.strip()

    @staticmethod
    def extract_number(text: str, pattern: str = r'(\d+(?:\.\d+)?)') -> str:
        """
        Extract a unit number label from text.

        Args:
            text: Text containing episode or chapter information
            pattern: Regex whose first group is the number

        Returns:
            The number as a string, or an empty string when absent
        """
        match = re.search(pattern, text or "", flags=re.IGNORECASE)
        return match.group(1) if match else ""

    @staticmethod
    def title_from_slug(slug: str) -> str:
        """Readable title built from a slug: 'one-piece' -> 'One Piece'."""
        return " ".join(word.capitalize() for word in slug.split('-') if word)


# Export utility classes and functions
__all__ = [
    "URLHelper",
    "TextCleaner",
    "get_attr",
]
