"""
Plugin Layer - Source adapter implementations.

This module contains the adapter base class and one sub-package per
scraped site, each pairing a parser of pure markup functions with the
adapter that fetches, caches and recovers.
"""

from otakuhub.plugins.base import SourcePlugin, PluginMetadata
from otakuhub.plugins.common import (
    URLHelper,
    TextCleaner,
    get_attr,
)

__all__ = [
    # Base Adapter Architecture
    "SourcePlugin",
    "PluginMetadata",
    # Adapter Development Utilities
    "URLHelper",
    "TextCleaner",
    "get_attr",
]
