"""U.S. Census Bureau API client.

Series ids are ``DATASET/PATH:VARIABLE``, e.g.
``timeseries/eits/retail:MRTSSM44X72USS`` (monthly retail sales) or
``acs/acs5:B01001_001E`` (ACS 5-year total population).

Without a key the API allows 500 requests per IP per day.
"""

from datetime import date
from typing import Any

from econfeed.config.constants import Source
from econfeed.ingestion.base import ProviderRequest, SourceClient
from econfeed.ingestion.exceptions import ParseError, ProviderError
from econfeed.ingestion.models import Observation, SeriesMetadata
from econfeed.ingestion.parsing import load_json, parse_period, parse_value

CENSUS_SERIES = (
    SeriesMetadata(
        id="timeseries/eits/retail:MRTSSM44X72USS",
        title="Retail Sales - Total (Monthly)",
        dataset="Economic Indicators",
        frequency="Monthly",
        units="Millions of Dollars",
    ),
    SeriesMetadata(
        id="timeseries/eits/adv:PRPOP",
        title="U.S. Resident Population",
        dataset="Economic Indicators",
        frequency="Monthly",
        units="Thousands",
    ),
    SeriesMetadata(
        id="timeseries/eits/housing:HOUST",
        title="Housing Starts - Total",
        dataset="Economic Indicators",
        frequency="Monthly",
        units="Thousands of Units",
    ),
    SeriesMetadata(
        id="timeseries/eits/mwts:MWTIMVA",
        title="Manufacturers' Shipments - Total",
        dataset="Economic Indicators",
        frequency="Monthly",
        units="Millions of Dollars",
    ),
    SeriesMetadata(
        id="acs/acs5:B01001_001E",
        title="Total Population (ACS 5-Year Estimates)",
        dataset="American Community Survey",
        frequency="Annual",
        units="Count",
    ),
    SeriesMetadata(
        id="acs/acs5:B19013_001E",
        title="Median Household Income (ACS 5-Year)",
        dataset="American Community Survey",
        frequency="Annual",
        units="Dollars",
    ),
    SeriesMetadata(
        id="pep/population:POP",
        title="Population Estimates",
        dataset="Population Estimates Program",
        frequency="Annual",
        units="Count",
    ),
)

CENSUS_DATASETS = (
    "timeseries/eits/retail",
    "timeseries/eits/housing",
    "timeseries/eits/mwts",
    "acs/acs1",
    "acs/acs5",
    "pep/population",
    "trade/timeseries",
    "cbp",
)

# Fixed column positions in the header-plus-rows table
VALUE_COLUMN = 0
TIME_COLUMN = 1


class CensusClient(SourceClient):
    """Census Bureau client with caching, rate limiting and retries."""

    source = Source.CENSUS
    base_url = "https://api.census.gov/data"
    catalog = CENSUS_SERIES
    datasets = CENSUS_DATASETS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.api_key is None:
            self.logger.warning(
                "Census API key not provided. Daily limit is 500 requests. "
                "Get a key at https://api.census.gov/data/key_signup.html"
            )

    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        dataset, variable = self._split_id(series_id, 2, 2, "DATASET:VARIABLE")

        if dataset.startswith("timeseries/"):
            time_range = f"from {start_date:%Y-%m} to {end_date:%Y-%m}"
        else:
            time_range = f"from {start_date.year} to {end_date.year}"

        params = {"get": variable, "time": time_range}
        if self.api_key:
            params["key"] = self.api_key

        # Geographic datasets need a location; default to the national total
        if "acs" in dataset or "pep" in dataset:
            params["for"] = "us:*"

        return ProviderRequest(url=f"{self.base_url}/{dataset}", params=params)

    def check_envelope(self, data: Any) -> None:
        if isinstance(data, dict) and "error" in data:
            raise ProviderError(
                f"Census API error: {data['error']}",
                context={"source": self.name},
            )

    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Parse the Census table.

        The API returns a JSON array whose first row is the header:
        ``[["VARIABLE", "time", "us"], ["value1", "2020-01", "1"], ...]``
        """
        data = load_json(body, self.name)
        self.check_envelope(data)

        if not isinstance(data, list) or len(data) < 2:
            raise ParseError(
                "Invalid Census API response: no data",
                context={"source": self.name, "series_id": series_id},
            )

        observations = []
        for row in data[1:]:
            if not isinstance(row, list):
                self.logger.warning(f"Skipping malformed Census row: {row!r}")
                continue
            try:
                obs_date = parse_period(str(row[TIME_COLUMN]))
            except (ValueError, IndexError, TypeError):
                self.logger.warning(f"Skipping Census row with unreadable time: {row!r}")
                continue
            observations.append(
                Observation(date=obs_date, value=parse_value(row[VALUE_COLUMN]), series_id=series_id)
            )
        return observations
