"""
Base Source Interface - Abstract base class for content source adapters.

This module defines the interface every source adapter implements, providing
a consistent capability set (list latest, search, detail, units, stream)
over one external website. The base class owns the adapter's throttled
fetcher, wires cache lookups around every operation and turns transport and
rendering failures into empty results.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Optional, Sequence, TypeVar

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from otakuhub.core.cache import TwoTierCache, cache_key
from otakuhub.core.config_schemas import FetchSettings, RenderSettings
from otakuhub.core.exceptions import FetchFailure, RenderingFailure, UnsupportedOperation
from otakuhub.core.fetcher import ThrottledFetcher, default_headers
from otakuhub.core.models import (
    CatalogItem,
    ChapterContent,
    ContentDetail,
    ContentType,
    EpisodeDetail,
    PagedResult,
    Unit,
    WeeklySchedule,
)
from otakuhub.core.renderer import RendererFactory, RenderingDriver, selenium_factory


logger = logging.getLogger(__name__)

T = TypeVar("T")


OPTIONAL_OPERATIONS = (
    "get_stream",
    "list_completed",
    "list_ongoing",
    "list_by_genre",
    "list_popular",
    "list_all",
    "list_by_type",
    "get_schedule",
    "get_chapter",
    "resolve_server",
)


class PluginMetadata(BaseModel):
    """Metadata information for a source."""

    name: str = Field(..., description="Source display name")
    version: str = Field(default="1.0.0", description="Adapter version")
    description: str = Field(default="", description="Source description")
    website: str = Field(..., description="Origin base URL")
    content_type: ContentType = Field(default=ContentType.SERIES, description="Primary content kind")
    rate_limit: float = Field(default=1.0, ge=0.0, description="Minimum seconds between requests")
    requires_rendering: bool = Field(default=False, description="Whether some operations drive a browser")


class SourcePlugin(ABC):
    """
    Abstract base class for source adapters.

    Subclasses set ``source`` (the cache and routing namespace) and
    implement the abstract operations. Optional capabilities raise
    :class:`UnsupportedOperation` unless overridden.
    """

    source: ClassVar[str] = ""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        cache: Optional[TwoTierCache] = None,
        fetcher: Optional[ThrottledFetcher] = None,
        renderer_factory: Optional[RendererFactory] = None,
        fetch_settings: Optional[FetchSettings] = None,
        render_settings: Optional[RenderSettings] = None,
    ):
        """
        Initialize the adapter.

        Args:
            config: Source-specific configuration (base_url, rate_limit, timeout)
            cache: Shared cache service
            fetcher: Pre-built fetcher (tests inject fakes here)
            renderer_factory: Creates one rendering driver per render
            fetch_settings: Global fetch settings
            render_settings: Global rendering settings
        """
        self.config = config or {}
        self.cache = cache or TwoTierCache()
        self.fetch_settings = fetch_settings or FetchSettings()
        self.render_settings = render_settings or RenderSettings()
        self._fetcher = fetcher
        self._renderer_factory = renderer_factory

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._initialize_config()

    def _initialize_config(self) -> None:
        """Initialize source configuration with defaults."""
        self.timeout = self.config.get('timeout', self.fetch_settings.timeout)
        self.rate_limit = float(self.config.get('rate_limit', self.metadata.rate_limit))
        self.max_retries = self.config.get('max_retries', self.fetch_settings.max_retries)
        self.retry_delay = self.config.get('retry_delay', self.fetch_settings.retry_delay)
        self.cache_ttl: Optional[int] = self.config.get('cache_ttl')

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Get source metadata information."""

    @property
    def base_url(self) -> str:
        return str(self.config.get('base_url') or self.metadata.website).rstrip('/')

    @property
    def fetcher(self) -> ThrottledFetcher:
        """Get or create this adapter's throttled fetcher."""
        if self._fetcher is None:
            self._fetcher = ThrottledFetcher(
                self.base_url,
                min_interval=self.rate_limit,
                headers=default_headers(
                    user_agent=self.fetch_settings.user_agent,
                    accept_language=self.fetch_settings.accept_language,
                    referer=self.base_url + '/',
                ),
                timeout=self.timeout,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
                name=self.source,
            )
        return self._fetcher

    def create_renderer(self) -> RenderingDriver:
        """Create a fresh rendering driver for one render."""
        if self._renderer_factory is None:
            self._renderer_factory = selenium_factory(
                **self.render_settings.driver_options(self.fetch_settings.user_agent)
            )
        return self._renderer_factory()

    def url(self, path: str) -> str:
        return self.fetcher.absolute(path)

    @staticmethod
    def parse(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", 'html.parser')

    async def get_document(self, path: str) -> BeautifulSoup:
        """Fetch a page and parse it."""
        return self.parse(await self.fetcher.get(path))

    async def _cached(
        self,
        operation: str,
        args: Sequence[Any],
        result_type: Any,
        loader: Callable[[], Awaitable[T]],
        fallback: T,
        cache_if: Optional[Callable[[T], bool]] = None,
    ) -> T:
        """
        Serve an operation from cache, loading and storing it on a miss.

        Transport and rendering failures, and records the markup cannot
        satisfy (pydantic validation errors), are logged and replaced by
        ``fallback``; they are never cached.

        Args:
            operation: Operation name used in the cache key
            args: Operation arguments used in the cache key
            result_type: Type the cached JSON is validated against
            loader: Coroutine factory producing a fresh result
            fallback: Value returned when the origin cannot be reached
            cache_if: Predicate deciding whether a fresh result is stored

        Returns:
            Cached or freshly loaded result, or ``fallback``
        """
        key = cache_key(self.source, operation, *args)
        adapter = TypeAdapter(result_type)

        hit = await self.cache.get(key)
        if hit is not None:
            try:
                result = adapter.validate_python(hit)
                self.logger.debug(f"Cache hit: {key}")
                return result
            except ValidationError as e:
                self.logger.debug(f"Dropping stale cache entry {key}: {e.error_count()} errors")
                await self.cache.delete(key)

        try:
            result = await loader()
        except (FetchFailure, RenderingFailure) as e:
            self.logger.warning(f"[{self.source}] {operation} {list(args)} failed: {e}")
            return fallback
        except ValidationError as e:
            self.logger.warning(
                f"[{self.source}] {operation} {list(args)} produced an invalid record: {e.error_count()} errors"
            )
            return fallback

        if result is None:
            return fallback

        if cache_if is None or cache_if(result):
            await self.cache.set(
                key,
                adapter.dump_python(result, mode="json", by_alias=True),
                self.cache_ttl,
            )
        return result

    async def _paged(
        self,
        operation: str,
        args: Sequence[Any],
        loader: Callable[[], Awaitable[PagedResult[CatalogItem]]],
        cache_empty: bool = True,
    ) -> PagedResult[CatalogItem]:
        """Cached listing returning an empty page on failure."""
        return await self._cached(
            operation,
            args,
            PagedResult[CatalogItem],
            loader,
            PagedResult[CatalogItem].empty(),
            cache_if=None if cache_empty else (lambda page: len(page) > 0),
        )

    # Core capabilities

    @abstractmethod
    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        """
        List the most recently updated items.

        Args:
            page: 1-based page number

        Returns:
            Paged items; empty with ``has_next=False`` on origin failure
        """

    @abstractmethod
    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        """Search the source catalog by title."""

    @abstractmethod
    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        """
        Get the full record for an item, units ascending by number.

        Returns:
            The detail, or None when the origin cannot be reached
        """

    async def get_units(self, slug: str) -> List[Unit]:
        """Episodes or chapters of an item, ascending."""
        detail = await self.get_detail(slug)
        return detail.units if detail else []

    # Optional capabilities

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        raise UnsupportedOperation(self.source, "get_stream")

    async def list_completed(self, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_completed")

    async def list_ongoing(self, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_ongoing")

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_by_genre")

    async def list_popular(self, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_popular")

    async def list_all(self, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_all")

    async def list_by_type(self, content_type: str, page: int = 1) -> PagedResult[CatalogItem]:
        raise UnsupportedOperation(self.source, "list_by_type")

    async def get_schedule(self) -> WeeklySchedule:
        raise UnsupportedOperation(self.source, "get_schedule")

    async def get_chapter(self, *slugs: str) -> Optional[ChapterContent]:
        raise UnsupportedOperation(self.source, "get_chapter")

    async def resolve_server(self, post: str, nume: str, type: str = "video") -> Optional[str]:
        raise UnsupportedOperation(self.source, "resolve_server")

    def supports(self, operation: str) -> bool:
        """Whether this adapter overrides an optional capability."""
        if operation not in OPTIONAL_OPERATIONS:
            return callable(getattr(self, operation, None))
        return getattr(type(self), operation) is not getattr(SourcePlugin, operation)

    def capabilities(self) -> List[str]:
        core = ["list_latest", "search", "get_detail", "get_units"]
        return core + [op for op in OPTIONAL_OPERATIONS if self.supports(op)]

    async def validate_connection(self) -> bool:
        """
        Validate that the adapter can reach its origin.

        Returns:
            True if the home page loads, False otherwise
        """
        try:
            await self.fetcher.get('/')
            return True
        except FetchFailure as e:
            self.logger.error(f"Connection validation failed: {e}")
            return False

    async def cleanup(self) -> None:
        """Clean up resources used by the adapter."""
        if self._fetcher is not None:
            await self._fetcher.close()

    def __str__(self) -> str:
        return f"{self.metadata.name} v{self.metadata.version}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source='{self.source}')"


# Export base source class and metadata
__all__ = ["SourcePlugin", "PluginMetadata", "OPTIONAL_OPERATIONS"]
