"""
OtakuHub - Catalog aggregator for anime, donghua, comic and novel sites.

Scrapes several Indonesian fan sites and normalizes their listings, details,
stream servers, chapters and schedules into one data model, with throttled
fetching, headless rendering and a two-tier cache.
"""

__version__ = "0.1.0"

# Package metadata
__title__ = "otakuhub"
__description__ = "Catalog aggregator for anime, donghua, comic and novel sites"
__license__ = "MIT"

# Version info tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split(".")))

# Export main components for easy importing
from otakuhub.core.models import (  # noqa: E402
    CatalogItem,
    ChapterContent,
    ContentDetail,
    EpisodeDetail,
    PagedResult,
    Unit,
    WeeklySchedule,
)

__all__ = [
    "__version__",
    "CatalogItem",
    "ChapterContent",
    "ContentDetail",
    "EpisodeDetail",
    "PagedResult",
    "Unit",
    "WeeklySchedule",
]
