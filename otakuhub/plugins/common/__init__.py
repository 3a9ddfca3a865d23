"""
Common utilities for source adapters.

This package contains the markup helpers, the extraction strategy chain
and the stream resolver shared by every adapter.
"""

from .utils import (
    URLHelper,
    TextCleaner,
    get_attr,
)

__all__ = [
    "URLHelper",
    "TextCleaner",
    "get_attr",
]
