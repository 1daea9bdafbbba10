"""Base classes for data ingestion."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar

import httpx

from econfeed.config.constants import Source
from econfeed.config.settings import Settings, get_settings
from econfeed.ingestion.exceptions import (
    FormatError,
    IngestionError,
    ParseError,
    TransportError,
)
from econfeed.ingestion.models import Observation, SeriesMetadata, SeriesResult
from econfeed.ingestion.parsing import load_json
from econfeed.ingestion.rate_limiter import RateLimiter
from econfeed.ingestion.retry import RetryPolicy
from econfeed.storage.cache import SeriesCache

# Query parameters that carry credentials and must never be logged
SECRET_PARAMS = frozenset({"UserID", "key", "api_key", "registrationkey"})


@dataclass
class ProviderRequest:
    """A fully built outbound GET request."""

    url: str
    params: dict[str, str] = field(default_factory=dict)

    def redacted_params(self) -> dict[str, str]:
        return {k: ("***" if k in SECRET_PARAMS else v) for k, v in self.params.items()}


class SourceClient(ABC):
    """Abstract base class for statistical-agency clients.

    Runs the shared fetch pipeline: fresh cache read, rate-limit admission,
    retried HTTP call, provider error check, parse, cache write, and a stale
    cache read when the live fetch fails. Subclasses supply the request
    builder, the error-envelope check and the response parser.
    """

    source: ClassVar[Source]
    base_url: ClassVar[str]
    catalog: ClassVar[tuple[SeriesMetadata, ...]] = ()
    datasets: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        api_key: str | None = None,
        cache: SeriesCache | None = None,
        retry_policy: RetryPolicy | None = None,
        rate_limiter: RateLimiter | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.api_key(self.source)
        if cache is None and self.settings.cache_enabled:
            cache = SeriesCache.from_settings(self.settings)
            self._owns_cache = True
        else:
            self._owns_cache = False
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self.logger = logging.getLogger(f"datasource.{self.source.value}")

        if rate_limiter is not None:
            self.rate_limiter: RateLimiter | None = rate_limiter
        elif self.settings.rate_limit_enabled:
            self.rate_limiter = RateLimiter.from_per_minute(
                self.settings.effective_rate_limit(self.source, self.api_key is not None)
            )
        else:
            self.rate_limiter = None

        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def name(self) -> str:
        return self.source.value

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        """Build the GET request for a series.

        Raises:
            FormatError: If the series id is malformed
        """
        ...

    def check_envelope(self, data: Any) -> None:
        """Raise ProviderError if the decoded body is an error payload."""

    @abstractmethod
    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Convert a raw response body into observations.

        Raises:
            ProviderError: If the body carries an error payload
            ParseError: If the body lacks the expected structure
        """
        ...

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.http_timeout,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client and cache if this client created them."""
        if self._http_client and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
        if self.cache is not None and self._owns_cache:
            await self.cache.close()

    async def _perform(self, request: ProviderRequest) -> str:
        """One HTTP attempt: GET, status check and error-envelope check."""
        client = await self._get_client()
        context = {"source": self.name, "url": request.url}

        try:
            response = await client.get(request.url, params=request.params)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{self.name} request failed: {e.__class__.__name__}",
                context={**context, "error": str(e)},
            ) from e

        if not response.is_success:
            raise TransportError(
                f"{self.name} API returned status {response.status_code}",
                context=context,
                status_code=response.status_code,
            )

        body = response.text
        self.check_envelope(load_json(body, self.name))
        return body

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def cache_key(self, series_id: str, start_date: date, end_date: date) -> str:
        return SeriesCache.make_key(self.name, series_id, start_date, end_date)

    def _result(
        self,
        series_id: str,
        observations: list[Observation],
        from_cache: bool = False,
        stale: bool = False,
    ) -> SeriesResult:
        return SeriesResult(
            source=self.source,
            series_id=series_id,
            observations=observations,
            from_cache=from_cache,
            stale=stale,
        )

    async def _read_cache(self, key: str, series_id: str, allow_stale: bool) -> list[Observation] | None:
        """Parse a cached payload, treating an unreadable entry as absent."""
        if self.cache is None:
            return None
        payload = await self.cache.get(key, allow_stale=allow_stale)
        if payload is None:
            return None
        try:
            return self.parse_response(payload, series_id)
        except IngestionError as e:
            self.logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            return None

    async def fetch_series(self, series_id: str, start_date: date, end_date: date) -> SeriesResult:
        """Fetch a series as canonical observations.

        Args:
            series_id: Provider-specific composite id
            start_date: First date of interest
            end_date: Last date of interest

        Returns:
            SeriesResult; ``stale`` is set when live fetching failed and an
            expired cache entry was served instead

        Raises:
            FormatError: Bad series id or date range
            TransportError: Retries exhausted and no cached copy exists
            ParseError: Unusable response and no cached copy exists
        """
        if start_date > end_date:
            raise FormatError(
                "start_date must not be after end_date",
                context={
                    "source": self.name,
                    "series_id": series_id,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                },
            )

        key = self.cache_key(series_id, start_date, end_date)

        cached = await self._read_cache(key, series_id, allow_stale=False)
        if cached is not None:
            self.logger.debug(f"Cache hit: {key}")
            return self._result(series_id, cached, from_cache=True)

        request = self.build_request(series_id, start_date, end_date)

        if self.rate_limiter is not None:
            waited = await self.rate_limiter.admit()
            if waited:
                self.logger.info(f"Rate limited for {waited:.2f}s before {series_id}")

        self.logger.debug(f"GET {request.url} {request.redacted_params()}")

        try:
            body = await self.retry_policy.execute(lambda: self._perform(request))
            observations = self.parse_response(body, series_id)
        except (TransportError, ParseError) as e:
            self.logger.warning(f"Fetch failed for {series_id}: {e}")
            stale = await self._read_cache(key, series_id, allow_stale=True)
            if stale is None:
                raise e.with_context(source=self.name, series_id=series_id)
            self.logger.info(f"Returning expired cache data for {series_id} due to API failure")
            return self._result(series_id, stale, from_cache=True, stale=True)

        if self.cache is not None:
            await self.cache.set(key, body)

        return self._result(series_id, observations)

    def search_series(self, query: str, limit: int = 100) -> list[SeriesMetadata]:
        """Search the curated catalog of known series."""
        if limit <= 0:
            return []
        return [entry for entry in self.catalog if entry.matches(query)][:limit]

    def list_datasets(self) -> list[str]:
        """List datasets this source serves."""
        return list(self.datasets)

    async def health_check(self) -> bool:
        """Check that the provider answers a request for its first catalog series."""
        if not self.catalog:
            return False
        today = date.today()
        try:
            request = self.build_request(self.catalog[0].id, date(today.year - 1, 1, 1), today)
            if self.rate_limiter is not None:
                await self.rate_limiter.admit()
            await self._perform(request)
            return True
        except IngestionError as e:
            self.logger.error(f"{self.name} health check failed: {e}")
            return False

    def _split_id(self, series_id: str, min_parts: int, max_parts: int, expected: str) -> list[str]:
        """Split a colon-delimited id, raising FormatError on a bad part count."""
        parts = series_id.split(":")
        if not min_parts <= len(parts) <= max_parts or not all(parts):
            raise FormatError(
                f"Invalid {self.name} series ID format. Expected {expected}",
                context={"source": self.name, "series_id": series_id},
            )
        return parts
