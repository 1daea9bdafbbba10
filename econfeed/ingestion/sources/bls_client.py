"""BLS (Bureau of Labor Statistics) Public Data API client.

Series ids are plain BLS series codes, e.g. ``CUUR0000SA0`` (CPI-U) or
``LNS14000000`` (unemployment rate).

Periods come as ``year`` plus ``period``: ``M01``-``M12`` months, ``M13``
the annual average, ``Q01``-``Q05`` quarters, ``S01``/``S02`` half years,
``A01`` annual.
"""

import re
from datetime import date
from typing import Any

from econfeed.config.constants import Source
from econfeed.ingestion.base import ProviderRequest, SourceClient
from econfeed.ingestion.exceptions import FormatError, ParseError, ProviderError
from econfeed.ingestion.models import Observation, SeriesMetadata
from econfeed.ingestion.parsing import load_json, parse_period, parse_value

SERIES_CODE = re.compile(r"^[A-Z0-9]{4,30}$")

# The v2 API serves at most 20 years per request
MAX_YEARS = 20

BLS_SERIES = (
    SeriesMetadata(id="CUUR0000SA0", title="CPI-U All Items, U.S. City Average",
                   dataset="Consumer Price Index", frequency="Monthly", units="Index 1982-84=100"),
    SeriesMetadata(id="CUUR0000SA0L1E", title="CPI-U All Items Less Food and Energy",
                   dataset="Consumer Price Index", frequency="Monthly", units="Index 1982-84=100"),
    SeriesMetadata(id="LNS14000000", title="Unemployment Rate",
                   dataset="Current Population Survey", frequency="Monthly", units="Percent"),
    SeriesMetadata(id="CES0000000001", title="Total Nonfarm Employment",
                   dataset="Current Employment Statistics", frequency="Monthly", units="Thousands"),
    SeriesMetadata(id="WPUFD4", title="PPI Final Demand",
                   dataset="Producer Price Index", frequency="Monthly", units="Index Nov 2009=100"),
    SeriesMetadata(id="PRS85006092", title="Nonfarm Business Labor Productivity",
                   dataset="Productivity", frequency="Quarterly", units="Percent Change"),
)

BLS_DATASETS = (
    "Consumer Price Index",
    "Producer Price Index",
    "Current Population Survey",
    "Current Employment Statistics",
    "Productivity",
)


def period_label(year: str, period: str) -> str:
    """Map a BLS year/period pair onto a shape ``parse_period`` understands."""
    kind, number = period[:1], period[1:]
    if kind == "M" and number != "13":
        return f"{year}M{number}"
    if kind == "Q" and number != "05":
        return f"{year}Q{int(number)}"
    if kind == "S":
        return f"{year}-{'01' if number == '01' else '07'}"
    return year


class BLSClient(SourceClient):
    """BLS client with caching, rate limiting and retries."""

    source = Source.BLS
    base_url = "https://api.bls.gov/publicAPI/v2/timeseries/data"
    catalog = BLS_SERIES
    datasets = BLS_DATASETS

    def __init__(self, include_annual_average: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.include_annual_average = include_annual_average

    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        (code,) = self._split_id(series_id, 1, 1, "SERIES")
        if not SERIES_CODE.match(code):
            raise FormatError(
                "Invalid BLS series code",
                context={"source": self.name, "series_id": series_id},
            )
        if end_date.year - start_date.year >= MAX_YEARS:
            raise FormatError(
                f"BLS requests span at most {MAX_YEARS} years",
                context={"source": self.name, "series_id": series_id},
            )

        params = {"startyear": str(start_date.year), "endyear": str(end_date.year)}
        if self.api_key:
            params["registrationkey"] = self.api_key
        if self.include_annual_average:
            params["annualaverage"] = "true"

        return ProviderRequest(url=f"{self.base_url}/{code}", params=params)

    def check_envelope(self, data: Any) -> None:
        if isinstance(data, dict) and data.get("status") not in (None, "REQUEST_SUCCEEDED"):
            messages = data.get("message") or []
            if not isinstance(messages, list):
                messages = [messages]
            message = "; ".join(str(m) for m in messages) or str(data["status"])
            raise ProviderError(f"BLS API error: {message}", context={"source": self.name})

    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Parse ``Results.series[0].data[]`` rows."""
        data = load_json(body, self.name)
        self.check_envelope(data)

        try:
            rows = data["Results"]["series"][0]["data"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError(
                "BLS response has no series data",
                context={"source": self.name, "series_id": series_id},
            ) from e
        if not isinstance(rows, list):
            raise ParseError(
                "BLS series data is not a list",
                context={"source": self.name, "series_id": series_id},
            )

        observations = []
        for row in rows:
            if not isinstance(row, dict):
                self.logger.warning(f"Skipping malformed BLS row: {row!r}")
                continue
            period = row.get("period", "")
            if period == "M13" and not self.include_annual_average:
                continue
            try:
                obs_date = parse_period(period_label(str(row["year"]), str(period)))
            except (KeyError, ValueError):
                self.logger.warning(f"Skipping BLS row with unreadable period: {row!r}")
                continue
            observations.append(
                Observation(date=obs_date, value=parse_value(row.get("value")), series_id=series_id)
            )
        return observations
