"""FRED (Federal Reserve Economic Data) API client.

Series ids are ``SERIES[:UNITS]`` where UNITS is an optional FRED data
transformation (``lin``, ``chg``, ``ch1``, ``pch``, ``pc1``, ``pca``,
``cch``, ``cca``, ``log``), e.g. ``GDP`` or ``CPIAUCSL:pc1``.
"""

from datetime import date
from typing import Any

from econfeed.config.constants import Source
from econfeed.ingestion.base import ProviderRequest, SourceClient
from econfeed.ingestion.exceptions import ConfigurationError, FormatError, ParseError, ProviderError
from econfeed.ingestion.models import Observation, SeriesMetadata
from econfeed.ingestion.parsing import load_json, parse_period, parse_value

FRED_UNITS = frozenset({"lin", "chg", "ch1", "pch", "pc1", "pca", "cch", "cca", "log"})

FRED_SERIES = (
    SeriesMetadata(id="GDP", title="Gross Domestic Product", dataset="National Accounts",
                   frequency="Quarterly", units="Billions of Dollars"),
    SeriesMetadata(id="GDPC1", title="Real Gross Domestic Product", dataset="National Accounts",
                   frequency="Quarterly", units="Billions of Chained 2017 Dollars"),
    SeriesMetadata(id="CPIAUCSL", title="Consumer Price Index for All Urban Consumers",
                   dataset="Prices", frequency="Monthly", units="Index 1982-1984=100"),
    SeriesMetadata(id="PCEPI", title="Personal Consumption Expenditures Price Index",
                   dataset="Prices", frequency="Monthly", units="Index 2017=100"),
    SeriesMetadata(id="UNRATE", title="Unemployment Rate", dataset="Employment",
                   frequency="Monthly", units="Percent"),
    SeriesMetadata(id="PAYEMS", title="All Employees, Total Nonfarm", dataset="Employment",
                   frequency="Monthly", units="Thousands of Persons"),
    SeriesMetadata(id="FEDFUNDS", title="Federal Funds Effective Rate", dataset="Interest Rates",
                   frequency="Monthly", units="Percent"),
    SeriesMetadata(id="BOPGSTB", title="Trade Balance: Goods and Services", dataset="International Trade",
                   frequency="Monthly", units="Millions of Dollars"),
    SeriesMetadata(id="POPTHM", title="Population", dataset="Population",
                   frequency="Monthly", units="Thousands"),
)

FRED_DATASETS = (
    "National Accounts",
    "Prices",
    "Employment",
    "Interest Rates",
    "International Trade",
    "Population",
)


class FREDClient(SourceClient):
    """FRED API client with caching, rate limiting and retries."""

    source = Source.FRED
    base_url = "https://api.stlouisfed.org/fred/series/observations"
    catalog = FRED_SERIES
    datasets = FRED_DATASETS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.api_key is None:
            self.logger.warning("FRED API key not configured")

    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        parts = self._split_id(series_id, 1, 2, "SERIES[:UNITS]")
        if len(parts) == 2 and parts[1] not in FRED_UNITS:
            raise FormatError(
                f"Unknown FRED units transformation {parts[1]!r}",
                context={"source": self.name, "series_id": series_id},
            )
        if not self.api_key:
            raise ConfigurationError(
                "FRED API key is required",
                context={"source": self.name, "series_id": series_id},
            )

        params = {
            "series_id": parts[0],
            "api_key": self.api_key,
            "file_type": "json",
            "observation_start": start_date.isoformat(),
            "observation_end": end_date.isoformat(),
        }
        if len(parts) == 2:
            params["units"] = parts[1]

        return ProviderRequest(url=self.base_url, params=params)

    def check_envelope(self, data: Any) -> None:
        if isinstance(data, dict) and "error_code" in data:
            raise ProviderError(
                f"FRED API error: {data.get('error_message', 'unknown error')}",
                context={"source": self.name, "error_code": data["error_code"]},
            )

    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Parse ``observations[]``; FRED marks missing values with ``"."``."""
        data = load_json(body, self.name)
        self.check_envelope(data)

        rows = data.get("observations") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ParseError(
                "FRED response has no observations",
                context={"source": self.name, "series_id": series_id},
            )

        observations = []
        for row in rows:
            if not isinstance(row, dict):
                self.logger.warning(f"Skipping malformed FRED row: {row!r}")
                continue
            try:
                obs_date = parse_period(str(row["date"]))
            except (KeyError, ValueError):
                self.logger.warning(f"Skipping FRED row with unreadable date: {row!r}")
                continue
            observations.append(
                Observation(date=obs_date, value=parse_value(row.get("value")), series_id=series_id)
            )
        return observations
