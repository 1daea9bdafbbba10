"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from typing import Any, AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio

from econfeed.config.settings import Settings
from econfeed.ingestion.retry import RetryPolicy
from econfeed.storage.cache import SeriesCache


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockAPI:
    """Queue of canned responses served through httpx.MockTransport.

    Each queued item is either an httpx.Response or an exception instance
    to raise; the last item repeats once the queue is drained.
    """

    def __init__(self, *items: Any) -> None:
        self.items = list(items)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        if isinstance(item, Exception):
            raise item
        # A fresh Response per request; httpx binds a response to one request
        return httpx.Response(item.status_code, content=item.content, headers=item.headers)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=json.dumps(data))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        cache_path=str(tmp_path / "cache.db"),
        retry_initial_delay_ms=1,
        bea_api_key="test-bea-key",
        census_api_key="test-census-key",
        fred_api_key="test-fred-key",
        bls_api_key="test-bls-key",
    )


@pytest_asyncio.fixture
async def cache(tmp_path: Path, clock: FakeClock) -> AsyncGenerator[SeriesCache, None]:
    """SQLite cache in a temporary directory driven by a fake clock."""
    series_cache = SeriesCache(tmp_path / "cache.db", default_ttl=3600, clock=clock)
    await series_cache.connect()
    yield series_cache
    await series_cache.close()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays recorded by recording_sleep."""
    return []


@pytest.fixture
def recording_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def fast_retry(recording_sleep: Callable[[float], Any]) -> RetryPolicy:
    """Three retries, 100ms doubling, without real sleeping."""
    return RetryPolicy(max_retries=3, initial_delay_ms=100, backoff=True, sleep=recording_sleep)


@pytest.fixture
def census_body() -> list[list[str]]:
    """Three months of retail sales in Census header-plus-rows form."""
    return [
        ["MRTSSM44X72USS", "time", "us"],
        ["525086", "2020-01", "1"],
        ["521308", "2020-02", "1"],
        ["483188", "2020-03", "1"],
    ]


@pytest.fixture
def bea_body() -> dict[str, Any]:
    return {
        "BEAAPI": {
            "Request": {"RequestParam": []},
            "Results": {
                "Statistic": "NIPA Table",
                "Data": [
                    {"TableName": "T10105", "SeriesCode": "A191RC", "LineNumber": "1",
                     "TimePeriod": "2021", "DataValue": "23,315,081"},
                    {"TableName": "T10105", "SeriesCode": "A191RC", "LineNumber": "1",
                     "TimePeriod": "2022", "DataValue": "25,744,108"},
                    {"TableName": "T10105", "SeriesCode": "DPCERC", "LineNumber": "2",
                     "TimePeriod": "2022", "DataValue": "17,511,748"},
                    {"TableName": "T10105", "SeriesCode": "A191RC", "LineNumber": "1",
                     "TimePeriod": "2023", "DataValue": "(NA)"},
                ],
            },
        }
    }


@pytest.fixture
def fred_body() -> dict[str, Any]:
    return {
        "observation_start": "2023-01-01",
        "observation_end": "2023-12-31",
        "units": "lin",
        "count": 3,
        "observations": [
            {"realtime_start": "2024-01-01", "realtime_end": "2024-01-01", "date": "2023-01-01", "value": "26813.601"},
            {"realtime_start": "2024-01-01", "realtime_end": "2024-01-01", "date": "2023-04-01", "value": "27063.012"},
            {"realtime_start": "2024-01-01", "realtime_end": "2024-01-01", "date": "2023-07-01", "value": "."},
        ],
    }


@pytest.fixture
def bls_body() -> dict[str, Any]:
    return {
        "status": "REQUEST_SUCCEEDED",
        "responseTime": 120,
        "message": [],
        "Results": {
            "series": [
                {
                    "seriesID": "CUUR0000SA0",
                    "data": [
                        {"year": "2023", "period": "M13", "periodName": "Annual", "value": "304.702"},
                        {"year": "2023", "period": "M02", "periodName": "February", "value": "300.840"},
                        {"year": "2023", "period": "M01", "periodName": "January", "value": "299.170"},
                    ],
                }
            ]
        },
    }


@pytest.fixture
def world_bank_body() -> list[Any]:
    return [
        {"page": 1, "pages": 1, "per_page": 20000, "total": 3},
        [
            {"indicator": {"id": "NY.GDP.MKTP.CD"}, "country": {"id": "US"}, "date": "2022", "value": 25744108000000},
            {"indicator": {"id": "NY.GDP.MKTP.CD"}, "country": {"id": "US"}, "date": "2021", "value": 23315081000000},
            {"indicator": {"id": "NY.GDP.MKTP.CD"}, "country": {"id": "US"}, "date": "2020", "value": None},
        ],
    ]
