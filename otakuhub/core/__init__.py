"""
Core Layer - Shared services and the source facade.

This module contains the data models, exceptions, throttled fetcher,
rendering driver, two-tier cache and configuration handling, plus the
SourceManager that routes operations to the source adapters.
"""

from otakuhub.core.config_manager import ConfigManager
from otakuhub.core.config_schemas import AppSettings, SourcesConfig, SourceConfig
from otakuhub.core.config_defaults import (
    create_default_config_files,
    get_default_settings,
    get_default_sources,
)
from otakuhub.core.exceptions import (
    OtakuHubError,
    ConfigurationError,
    SourceError,
    UnsupportedOperation,
    FetchFailure,
    RenderingFailure,
    CacheUnavailable,
)
from otakuhub.core.models import (
    CatalogItem,
    ChapterContent,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    ScheduleEntry,
    StreamServer,
    Unit,
    WeeklySchedule,
)
from otakuhub.core.source_manager import SourceManager

__all__ = [
    # Data Models
    "CatalogItem",
    "ChapterContent",
    "ContentDetail",
    "ContentType",
    "EpisodeDetail",
    "PagedResult",
    "ScheduleEntry",
    "StreamServer",
    "Unit",
    "WeeklySchedule",
    # Configuration Management
    "ConfigManager",
    "AppSettings",
    "SourcesConfig",
    "SourceConfig",
    # Configuration Utilities
    "create_default_config_files",
    "get_default_settings",
    "get_default_sources",
    # Source Facade
    "SourceManager",
    # Exceptions
    "OtakuHubError",
    "ConfigurationError",
    "SourceError",
    "UnsupportedOperation",
    "FetchFailure",
    "RenderingFailure",
    "CacheUnavailable",
]
