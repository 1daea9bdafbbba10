"""Source registry routing canonical requests to per-provider clients."""

import asyncio
import logging
from datetime import date
from typing import Iterable

import httpx

from econfeed.config.constants import Source
from econfeed.config.settings import Settings, get_settings
from econfeed.ingestion.base import SourceClient
from econfeed.ingestion.exceptions import UnknownSourceError
from econfeed.ingestion.models import SeriesMetadata, SeriesRequest, SeriesResult
from econfeed.ingestion.retry import RetryPolicy
from econfeed.ingestion.sources import CLIENT_CLASSES
from econfeed.storage.cache import CacheStats, SeriesCache

logger = logging.getLogger(__name__)


class SeriesRegistry:
    """Maps each Source to one client. Holds no caching or rate-limit logic."""

    def __init__(self, cache: SeriesCache | None = None) -> None:
        self.cache = cache
        self._clients: dict[Source, SourceClient] = {}

    def register(self, client: SourceClient) -> None:
        """Register a client, replacing any previous one for its source."""
        self._clients[client.source] = client

    def sources(self) -> list[Source]:
        return list(self._clients)

    def _resolve(self, source: Source | str) -> Source:
        try:
            return Source(source)
        except ValueError as e:
            raise UnknownSourceError(
                f"Unknown source: {source}",
                context={"source": str(source), "available": [s.value for s in self._clients]},
            ) from e

    def get(self, source: Source | str) -> SourceClient:
        """Return the client for ``source``.

        Raises:
            UnknownSourceError: If the source is not a known name or has no client
        """
        key = self._resolve(source)
        client = self._clients.get(key)
        if client is None:
            raise UnknownSourceError(
                f"No client registered for source: {key.value}",
                context={"source": key.value, "available": [s.value for s in self._clients]},
            )
        return client

    async def fetch_series(
        self,
        source: Source | str,
        series_id: str,
        start_date: date,
        end_date: date,
    ) -> SeriesResult:
        """Route a request to its source client and return the result unchanged."""
        return await self.get(source).fetch_series(series_id, start_date, end_date)

    async def fetch_many(
        self, requests: Iterable[SeriesRequest]
    ) -> dict[SeriesRequest, SeriesResult | Exception]:
        """Fetch several series concurrently.

        Failures are returned in place of results rather than raised.
        """
        requests = list(requests)
        tasks = [
            self.fetch_series(r.source, r.series_id, r.start_date, r.end_date)
            for r in requests
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        data: dict[SeriesRequest, SeriesResult | Exception] = {}
        for request, result in zip(requests, results):
            if isinstance(result, Exception):
                logger.error(f"Error fetching {request.source.value}:{request.series_id}: {result}")
            data[request] = result
        return data

    def search_series(self, source: Source | str, query: str, limit: int = 100) -> list[SeriesMetadata]:
        return self.get(source).search_series(query, limit)

    def list_datasets(self, source: Source | str) -> list[str]:
        return self.get(source).list_datasets()

    async def cache_stats(self) -> CacheStats | None:
        if self.cache is None:
            return None
        return await self.cache.stats()

    async def clear_cache(self, source: Source | str | None = None) -> int:
        """Clear the shared cache, or only one source's entries."""
        name = self._resolve(source).value if source is not None else None
        if self.cache is None:
            return 0
        return await self.cache.clear(name)

    async def close(self) -> None:
        """Close all clients and the cache."""
        for client in self._clients.values():
            await client.close()
        if self.cache is not None:
            await self.cache.close()


def create_registry(
    settings: Settings | None = None,
    cache: SeriesCache | None = None,
    http_client: httpx.AsyncClient | None = None,
    sources: Iterable[Source] | None = None,
) -> SeriesRegistry:
    """Build a registry with one client per source sharing one cache and retry policy."""
    settings = settings or get_settings()
    if cache is None and settings.cache_enabled:
        cache = SeriesCache.from_settings(settings)
    retry_policy = RetryPolicy.from_settings(settings)

    registry = SeriesRegistry(cache=cache)
    for source in CLIENT_CLASSES if sources is None else sources:
        client_cls = CLIENT_CLASSES[source]
        registry.register(
            client_cls(
                cache=cache,
                retry_policy=retry_policy,
                http_client=http_client,
                settings=settings,
            )
        )
    logger.info(f"Registered sources: {', '.join(s.value for s in registry.sources())}")
    return registry
