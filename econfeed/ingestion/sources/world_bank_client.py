"""World Bank Indicators API client.

Series ids are ``COUNTRY:INDICATOR``, e.g. ``USA:NY.GDP.MKTP.CD`` (GDP in
current US$) or ``WLD:SP.POP.TOTL`` (world population). No API key.
"""

from datetime import date
from typing import Any

from econfeed.config.constants import Source
from econfeed.ingestion.base import ProviderRequest, SourceClient
from econfeed.ingestion.exceptions import ParseError, ProviderError
from econfeed.ingestion.models import Observation, SeriesMetadata
from econfeed.ingestion.parsing import load_json, parse_period, parse_value

PER_PAGE = 20000

WORLD_BANK_SERIES = (
    SeriesMetadata(id="USA:NY.GDP.MKTP.CD", title="GDP (current US$) - United States",
                   dataset="World Development Indicators", frequency="Annual", units="Current US$"),
    SeriesMetadata(id="USA:NY.GDP.MKTP.KD.ZG", title="GDP growth (annual %) - United States",
                   dataset="World Development Indicators", frequency="Annual", units="Percent"),
    SeriesMetadata(id="USA:FP.CPI.TOTL.ZG", title="Inflation, consumer prices (annual %) - United States",
                   dataset="World Development Indicators", frequency="Annual", units="Percent"),
    SeriesMetadata(id="USA:NE.TRD.GNFS.ZS", title="Trade (% of GDP) - United States",
                   dataset="World Development Indicators", frequency="Annual", units="Percent of GDP"),
    SeriesMetadata(id="WLD:SP.POP.TOTL", title="Population, total - World",
                   dataset="World Development Indicators", frequency="Annual", units="Count"),
    SeriesMetadata(id="USA:SI.POV.GINI", title="Gini index - United States",
                   dataset="World Development Indicators", frequency="Annual", units="Index"),
)

WORLD_BANK_DATASETS = (
    "World Development Indicators",
    "International Debt Statistics",
    "Gender Statistics",
    "Global Economic Monitor",
)


class WorldBankClient(SourceClient):
    """World Bank client with caching, rate limiting and retries."""

    source = Source.WORLD_BANK
    base_url = "https://api.worldbank.org/v2/country"
    catalog = WORLD_BANK_SERIES
    datasets = WORLD_BANK_DATASETS

    def build_request(self, series_id: str, start_date: date, end_date: date) -> ProviderRequest:
        country, indicator = self._split_id(series_id, 2, 2, "COUNTRY:INDICATOR")
        return ProviderRequest(
            url=f"{self.base_url}/{country}/indicator/{indicator}",
            params={
                "format": "json",
                "date": f"{start_date.year}:{end_date.year}",
                "per_page": str(PER_PAGE),
            },
        )

    def check_envelope(self, data: Any) -> None:
        # Errors come back as [{"message": [{"id": ..., "key": ..., "value": ...}]}]
        if isinstance(data, list) and data and isinstance(data[0], dict) and "message" in data[0]:
            messages = data[0]["message"]
            first = messages[0] if isinstance(messages, list) and messages else messages
            if isinstance(first, dict):
                detail = first.get("value") or first.get("key") or "unknown error"
            else:
                detail = str(first or "unknown error")
            raise ProviderError(f"World Bank API error: {detail}", context={"source": self.name})

    def parse_response(self, body: str, series_id: str) -> list[Observation]:
        """Parse ``[page_meta, rows]``; a page with no rows yields no observations."""
        data = load_json(body, self.name)
        self.check_envelope(data)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise ParseError(
                "Invalid World Bank response format",
                context={"source": self.name, "series_id": series_id},
            )
        rows = data[1] if len(data) > 1 and data[1] is not None else []
        if not isinstance(rows, list):
            raise ParseError(
                "World Bank response rows are not a list",
                context={"source": self.name, "series_id": series_id},
            )

        observations = []
        for row in rows:
            if not isinstance(row, dict):
                self.logger.warning(f"Skipping malformed World Bank row: {row!r}")
                continue
            try:
                obs_date = parse_period(str(row["date"]))
            except (KeyError, ValueError):
                self.logger.warning(f"Skipping World Bank row with unreadable date: {row!r}")
                continue
            observations.append(
                Observation(date=obs_date, value=parse_value(row.get("value")), series_id=series_id)
            )
        return observations
