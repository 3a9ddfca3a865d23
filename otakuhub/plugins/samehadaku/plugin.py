"""
Samehadaku Plugin - Source adapter for samehadaku.li

Episode pages expose a default iframe plus server buttons carrying
``data-post``/``data-nume``/``data-type`` identifiers. Those buttons are
resolved through the WordPress admin-ajax ``player_ajax`` action; each
resolved player URL is cached on its own so episodes sharing a server slot
reuse it.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from otakuhub.core.models import CatalogItem, ContentDetail, ContentType, EpisodeDetail, PagedResult
from otakuhub.plugins.base import PluginMetadata, SourcePlugin
from otakuhub.plugins.common.streams import DeferredServer, StreamResolver, post_deferred

from .parser import SamehadakuParser, SOURCE


logger = logging.getLogger(__name__)


plugin_metadata = PluginMetadata(
    name="Samehadaku",
    version="1.0.0",
    description="Indonesian anime series with deferred player resolution",
    website="https://samehadaku.li",
    content_type=ContentType.SERIES,
    rate_limit=1.0,
)

default_config: Dict[str, Any] = {
    "base_url": plugin_metadata.website,
    "rate_limit": plugin_metadata.rate_limit,
    "timeout": 20,
}


class SamehadakuPlugin(SourcePlugin):
    """Samehadaku anime adapter."""

    source = SOURCE

    def __init__(self, config: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(config, **kwargs)
        self.parser = SamehadakuParser(base_url=self.base_url)
        self.resolver = StreamResolver(SOURCE, deferred_resolver=self._resolve_deferred)

    @property
    def metadata(self) -> PluginMetadata:
        return plugin_metadata

    async def list_latest(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            path = "/" if page <= 1 else f"/page/{page}/"
            return self.parser.parse_latest(await self.fetcher.get(path))

        return await self._paged("latest", [page], load)

    async def list_ongoing(self, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_ongoing(await self.fetcher.get(f"/anime/?status=ongoing&page={page}"))

        return await self._paged("ongoing", [page], load)

    async def search(self, query: str, page: int = 1) -> PagedResult[CatalogItem]:
        query = query.strip()
        if not query:
            return PagedResult[CatalogItem].empty()

        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_search(await self.fetcher.get(f"/page/{page}/?s={quote_plus(query)}"))

        return await self._paged("search", [query, page], load)

    async def list_by_genre(self, genre: str, page: int = 1) -> PagedResult[CatalogItem]:
        async def load() -> PagedResult[CatalogItem]:
            return self.parser.parse_search(await self.fetcher.get(f"/genres/{genre}/page/{page}/"))

        return await self._paged("genre", [genre, page], load)

    async def get_detail(self, slug: str) -> Optional[ContentDetail]:
        async def load() -> ContentDetail:
            return self.parser.parse_detail(await self.fetcher.get(f"/anime/{slug}/"), slug)

        return await self._cached("detail", [slug], ContentDetail, load, None)

    async def resolve_server(self, post: str, nume: str, type: str = "video") -> Optional[str]:
        """
        Resolve one deferred server slot to its player URL.

        Args:
            post: Content reference from ``data-post``
            nume: Server slot from ``data-nume``
            type: Player type from ``data-type``

        Returns:
            Player URL, or None when the endpoint returns no iframe or fails
        """
        async def load() -> Optional[str]:
            server = DeferredServer(post=post, nume=nume, type=type)
            return await post_deferred(self.fetcher, server)

        return await self._cached("stream", [post, nume, type], str, load, None)

    async def _resolve_deferred(self, server: DeferredServer) -> Optional[str]:
        return await self.resolve_server(server.post, server.nume, server.type)

    async def get_stream(self, unit_slug: str) -> Optional[EpisodeDetail]:
        async def load() -> EpisodeDetail:
            doc = await self.get_document(f"/{unit_slug}/")
            servers = await self.resolver.resolve(doc)
            return self.parser.parse_episode(doc, unit_slug, servers)

        return await self._cached("episode", [unit_slug], EpisodeDetail, load, None)


# Export plugin class and metadata
__all__ = ["SamehadakuPlugin", "plugin_metadata", "default_config"]
