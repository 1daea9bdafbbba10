"""BEA (Bureau of Economic Analysis) API client.

Series ids are ``DATASET:TABLE[:LINE[:GEOFIPS]]``:
    - ``NIPA:T10105:A191RC`` - NIPA Table 1.1.5, GDP line
    - ``Regional:SQGDP:1:ALL`` - quarterly GDP for all states

Rate limit is 100 requests per minute with a key; keyless requests go out
as ``DEMO_KEY`` with a lower quota.
"""

from datetime import date
from typing import Any, Literal

from econfeed.config.constants import Source
from econfeed.ingestion.base import ProviderRequest, SourceClient
from econfeed.ingestion.exceptions import ParseError, ProviderError
from econfeed.ingestion.models import Observation, SeriesMetadata
from econfeed.ingestion.parsing import load_json, parse_period, parse_value

BEA_SERIES = (
    SeriesMetadata(
        id="NIPA:T10105:A191RC",
        title="Gross Domestic Product",
        dataset="NIPA",
        frequency="Annual",
        units="Billions of Dollars",
    ),
    SeriesMetadata(
        id="NIPA:T10106:A191RX",
        title="Real Gross Domestic Product",
        dataset="NIPA",
        frequency="Annual",
        units="Billions of Chained 2017 Dollars",
    ),
    SeriesMetadata(
        id="NIPA:T20100:DPCERC",
        title="Personal Consumption Expenditures",
        dataset="NIPA",
        frequency="Annual",
        units="Billions of Dollars",
    ),
    SeriesMetadata(
        id="NIPA:T50500:A191RC",
        title="Gross Domestic Product by Industry",
        dataset="NIPA",
        frequency="Annual",
        units="Billions of Dollars",
    ),
    SeriesMetadata(
        id="Regional:SQGDP:1:ALL",
        title="State GDP - All States",
        dataset="Regional",
        frequency="Quarterly",
        units="Millions of Dollars",
    ),
)

BEA_DATASETS = ("NIPA", "NIUnderlyingDetail", "MNE", "FixedAssets", "ITA", "IIP", "Regional")

BEA_TABLES = {
    "NIPA": ["T10105", "T10106", "T20100", "T20200", "T50100", "T50500"],
}


class BEAClient(SourceClient):
    """BEA client with caching, rate limiting and retries."""

    source = Source.BEA
    base_url = "https://apps.bea.gov/api/data"
    catalog = BEA_SERIES
    datasets = BEA_DATASETS

    def __init__(self, frequency: Literal["A", "Q", "M"] = "A", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.frequency = frequency
        if self.api_key is None:
            self.logger.warning(
                "BEA API key not provided. Some features may be limited. "
                "Get a key at https://apps.bea.gov/api/signup/"
            )

    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        parts = self._split_id(series_id, 2, 4, "DATASET:TABLE[:LINE[:GEOFIPS]]")
        dataset, table = parts[0], parts[1]

        params = {
            "UserID": self.api_key or "DEMO_KEY",
            "method": "GetData",
            "datasetname": dataset,
            "TableName": table,
            "Frequency": self.frequency,
            "Year": ",".join(str(y) for y in range(start_date.year, end_date.year + 1)),
            "ResultFormat": "JSON",
        }
        if len(parts) >= 3:
            params["LineCode"] = parts[2]
        if len(parts) == 4:
            params["GeoFips"] = parts[3]

        return ProviderRequest(url=self.base_url, params=params)

    def cache_key(self, series_id: str, start_date: date, end_date: date) -> str:
        # Frequency changes the response; keep annual and quarterly entries apart
        return super().cache_key(f"{series_id}@{self.frequency}", start_date, end_date)

    def check_envelope(self, data: Any) -> None:
        if not isinstance(data, dict) or "BEAAPI" not in data:
            return
        api = data["BEAAPI"]
        if not isinstance(api, dict):
            raise ParseError(
                "BEA API response has a malformed BEAAPI section",
                context={"source": self.name, "BEAAPI": str(api)[:200]},
            )
        error = api.get("Error") or self._results(api).get("Error")
        if error:
            if isinstance(error, list):
                error = error[0] if error else "unknown error"
            description = error.get("APIErrorDescription", error) if isinstance(error, dict) else error
            raise ProviderError(f"BEA API error: {description}", context={"source": self.name})

    @staticmethod
    def _results(api: dict[str, Any]) -> dict[str, Any]:
        """Return ``BEAAPI.Results``; some datasets wrap it in a one-element list."""
        results = api.get("Results")
        if isinstance(results, list):
            results = results[0] if results else {}
        return results if isinstance(results, dict) else {}

    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Parse ``BEAAPI.Results.Data`` rows into observations."""
        data = load_json(body, self.name)

        if not isinstance(data, dict) or "BEAAPI" not in data:
            raise ParseError(
                "Invalid BEA API response format",
                context={"source": self.name, "series_id": series_id},
            )
        self.check_envelope(data)

        rows = self._results(data["BEAAPI"]).get("Data")
        if not isinstance(rows, list):
            raise ParseError(
                "BEA API response has no Data rows",
                context={"source": self.name, "series_id": series_id},
            )

        parts = series_id.split(":")
        line = parts[2] if len(parts) >= 3 else ""

        observations = []
        for row in rows:
            if not isinstance(row, dict):
                self.logger.warning(f"Skipping malformed BEA row: {row!r}")
                continue
            if line and not self._matches_line(row, line):
                continue
            period = row.get("TimePeriod") or row.get("Year")
            try:
                obs_date = parse_period(str(period))
            except ValueError:
                self.logger.warning(f"Skipping BEA row with unreadable period: {period!r}")
                continue
            observations.append(
                Observation(date=obs_date, value=parse_value(row.get("DataValue")), series_id=series_id)
            )
        return observations

    @staticmethod
    def _matches_line(row: dict[str, Any], line: str) -> bool:
        """Keep rows for the requested line; rows without line fields pass."""
        codes = [row.get(k) for k in ("SeriesCode", "LineNumber", "LineCode") if row.get(k) is not None]
        return not codes or line in (str(c) for c in codes)

    def list_tables(self, dataset: str) -> list[str]:
        """Known tables for a dataset."""
        return list(BEA_TABLES.get(dataset, []))
