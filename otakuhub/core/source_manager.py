"""
Source Manager - Source discovery and dispatch facade.

This module discovers the source adapters shipped in ``otakuhub.plugins``,
instantiates them lazily from configuration with a shared cache, and
routes operations to them by source name. Unknown sources and missing
capabilities are caller errors and raise; origin failures never do, since
every adapter recovers them into empty results.
"""

import asyncio
import importlib
import inspect
import logging
import pkgutil
from typing import Any, Dict, List, Optional, Type

from otakuhub.core.cache import MemoryCache, RedisCache, TwoTierCache
from otakuhub.core.config_manager import ConfigManager
from otakuhub.core.config_schemas import AppSettings
from otakuhub.core.exceptions import OtakuHubError, SourceError, UnsupportedOperation
from otakuhub.core.models import CatalogItem, PagedResult
from otakuhub.core.renderer import RendererFactory
from otakuhub.plugins.base import SourcePlugin


logger = logging.getLogger(__name__)

PLUGINS_PACKAGE = "otakuhub.plugins"
SHARED_PACKAGES = {"common"}


def create_cache(settings: AppSettings) -> TwoTierCache:
    """Build the shared cache service from settings."""
    cache_settings = settings.cache
    primary = RedisCache(cache_settings.redis_url) if cache_settings.enabled else None
    memory = MemoryCache(
        max_entries=cache_settings.memory_max_entries,
        evict_count=cache_settings.memory_evict_count,
    )
    return TwoTierCache(primary=primary, memory=memory, default_ttl=cache_settings.ttl)


class SourceManager:
    """
    Routes catalog operations to source adapters.

    Adapters are discovered once, created on first use and kept for the
    manager's lifetime so each keeps its own throttle state and HTTP session.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        cache: Optional[TwoTierCache] = None,
        renderer_factory: Optional[RendererFactory] = None,
        package: str = PLUGINS_PACKAGE,
    ):
        """
        Initialize the source manager.

        Args:
            config_manager: Configuration manager instance
            cache: Shared cache (built from settings when omitted)
            renderer_factory: Rendering driver factory passed to every adapter
            package: Package scanned for adapter sub-packages
        """
        self.config_manager = config_manager
        self.cache = cache or create_cache(config_manager.settings)
        self.renderer_factory = renderer_factory
        self.package = package

        self._available: Dict[str, Type[SourcePlugin]] = {}
        self._loaded: Dict[str, SourcePlugin] = {}
        self._errors: Dict[str, Exception] = {}
        self._discovery_complete = False

    def discover_sources(self) -> Dict[str, Type[SourcePlugin]]:
        """
        Discover adapter classes in the plugins package.

        Every sub-package other than the shared helpers is imported and its
        first concrete :class:`SourcePlugin` subclass registered under the
        class's ``source`` name.

        Returns:
            Mapping of source name to adapter class
        """
        package = importlib.import_module(self.package)
        self._available.clear()

        for module_info in pkgutil.iter_modules(package.__path__):
            if not module_info.ispkg or module_info.name in SHARED_PACKAGES:
                continue

            module_name = f"{self.package}.{module_info.name}"
            try:
                module = importlib.import_module(module_name)
            except Exception as e:
                self._errors[module_info.name] = e
                logger.error(f"Failed to import source package {module_name}: {e}")
                continue

            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, SourcePlugin) and obj is not SourcePlugin and not inspect.isabstract(obj):
                    self._available[obj.source or module_info.name] = obj
                    logger.debug(f"Discovered source: {obj.source} ({obj.__name__})")
                    break
            else:
                logger.warning(f"No source adapter found in {module_name}")

        self._discovery_complete = True
        logger.info(f"Source discovery complete: {len(self._available)} sources found")
        return dict(self._available)

    @property
    def available_sources(self) -> List[str]:
        if not self._discovery_complete:
            self.discover_sources()
        return list(self._available)

    def enabled_sources(self) -> List[str]:
        """Names of discovered and enabled sources, by priority."""
        available = set(self.available_sources)
        return [name for name in self.config_manager.get_enabled_sources() if name in available]

    def get_source(self, name: str) -> SourcePlugin:
        """
        Get the adapter for a source, creating it on first use.

        Args:
            name: Source name

        Returns:
            The adapter instance

        Raises:
            SourceError: If the source is unknown or disabled
        """
        if name in self._loaded:
            return self._loaded[name]

        if name not in self.available_sources:
            raise SourceError(f"Unknown source: {name}", source_name=name)

        source_config = self.config_manager.sources.get_source(name)
        if source_config is not None and not source_config.enabled:
            raise SourceError(f"Source is disabled: {name}", source_name=name)

        settings = self.config_manager.settings
        plugin = self._available[name](
            config=dict(source_config.config) if source_config else {},
            cache=self.cache,
            renderer_factory=self.renderer_factory,
            fetch_settings=settings.fetch,
            render_settings=settings.render,
        )
        self._loaded[name] = plugin
        logger.info(f"Loaded source: {name}")
        return plugin

    def sources_supporting(self, operation: str) -> List[str]:
        """Enabled sources offering an optional capability."""
        return [name for name in self.enabled_sources() if self.get_source(name).supports(operation)]

    async def call(self, source: str, operation: str, *args: Any) -> Any:
        """
        Invoke an operation on a source.

        Args:
            source: Source name
            operation: Adapter operation name, e.g. ``list_latest``
            *args: Operation arguments

        Returns:
            The operation's result

        Raises:
            SourceError: If the source is unknown or disabled
            UnsupportedOperation: If the source lacks the capability
        """
        plugin = self.get_source(source)
        if not plugin.supports(operation):
            raise UnsupportedOperation(source, operation)

        logger.debug(f"{source}.{operation}{args}")
        return await getattr(plugin, operation)(*args)

    async def list_latest(self, source: str, page: int = 1) -> PagedResult[CatalogItem]:
        return await self.call(source, "list_latest", page)

    async def search(self, source: str, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        return await self.call(source, "search", query, page)

    async def get_detail(self, source: str, slug: str):
        return await self.call(source, "get_detail", slug)

    async def get_units(self, source: str, slug: str):
        return await self.call(source, "get_units", slug)

    async def get_stream(self, source: str, unit_slug: str):
        return await self.call(source, "get_stream", unit_slug)

    async def get_chapter(self, source: str, *slugs: str):
        return await self.call(source, "get_chapter", *slugs)

    async def get_schedule(self, source: str):
        return await self.call(source, "get_schedule")

    async def search_all(
        self,
        query: str,
        max_concurrent: Optional[int] = None,
    ) -> Dict[str, PagedResult[CatalogItem]]:
        """
        Search every enabled source concurrently.

        Concurrency is bounded by ``max_concurrent_sources`` and each source
        gets ``operation_timeout`` seconds; a source that times out or fails
        contributes an empty page.

        Args:
            query: Search query string
            max_concurrent: Override for the concurrency bound

        Returns:
            Mapping of source name to its first result page
        """
        sources = self.enabled_sources()
        if not sources:
            logger.warning("No enabled sources available for search")
            return {}

        global_config = self.config_manager.sources.global_config
        semaphore = asyncio.Semaphore(max_concurrent or global_config.max_concurrent_sources)

        async def search_source(name: str) -> PagedResult[CatalogItem]:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        self.search(name, query),
                        timeout=global_config.operation_timeout,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"Search timed out for source {name}")
                except OtakuHubError as e:
                    logger.error(f"Search failed for source {name}: {e}")
                    self._errors[name] = e
                except Exception as e:
                    logger.error(f"Unexpected error searching source {name}: {e}", exc_info=True)
                    self._errors[name] = e
                return PagedResult[CatalogItem].empty()

        pages = await asyncio.gather(*(search_source(name) for name in sources))
        results = dict(zip(sources, pages))

        total = sum(len(page) for page in results.values())
        logger.info(f"Search complete: {total} total results from {len(results)} sources")
        return results

    def get_source_status(self) -> Dict[str, Any]:
        """
        Get status information for all sources.

        Returns:
            Counts plus per-source enabled/loaded/error state and capabilities
        """
        status: Dict[str, Any] = {
            "discovered": len(self.available_sources),
            "loaded": len(self._loaded),
            "errors": len(self._errors),
            "sources": {},
        }

        for name, source_class in self._available.items():
            source_config = self.config_manager.sources.get_source(name)
            info: Dict[str, Any] = {
                "class": source_class.__name__,
                "loaded": name in self._loaded,
                "enabled": source_config.enabled if source_config else False,
                "error": str(self._errors[name]) if name in self._errors else None,
            }
            if name in self._loaded:
                plugin = self._loaded[name]
                info["metadata"] = plugin.metadata.model_dump(mode="json")
                info["capabilities"] = plugin.capabilities()
            status["sources"][name] = info

        return status

    async def cleanup(self) -> None:
        """Close every adapter's HTTP session and the shared cache."""
        logger.debug("Cleaning up source manager")

        if self._loaded:
            await asyncio.gather(
                *(plugin.cleanup() for plugin in self._loaded.values()),
                return_exceptions=True,
            )
        self._loaded.clear()
        await self.cache.close()


# Export source manager
__all__ = ["SourceManager", "create_cache", "PLUGINS_PACKAGE"]
