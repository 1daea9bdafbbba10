"""Canonical time-series data model shared by all sources."""

import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Iterator

import pandas as pd

from econfeed.config.constants import Source


@dataclass(frozen=True)
class Observation:
    """One (date, value) point of a series. NaN marks a missing value."""

    date: date
    value: float
    series_id: str

    @property
    def is_missing(self) -> bool:
        return math.isnan(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "value": None if self.is_missing else self.value,
            "series_id": self.series_id,
        }


@dataclass(frozen=True)
class SeriesRequest:
    """Canonical request routed by the registry."""

    source: Source
    series_id: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class SeriesMetadata:
    """Catalog entry describing a known series."""

    id: str
    title: str
    dataset: str
    frequency: str = ""
    units: str = ""

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, dataset or id."""
        needle = query.lower()
        return (
            needle in self.title.lower()
            or needle in self.dataset.lower()
            or needle in self.id.lower()
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "dataset": self.dataset,
            "frequency": self.frequency,
            "units": self.units,
        }


@dataclass
class SeriesResult:
    """Observations for one request plus where they came from.

    Attributes:
        from_cache: Served from the cache rather than a live call
        stale: Served from an expired cache entry after a failed live fetch
    """

    source: Source
    series_id: str
    observations: list[Observation]
    from_cache: bool = False
    stale: bool = False
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __len__(self) -> int:
        return len(self.observations)

    @property
    def is_fresh(self) -> bool:
        return not self.stale

    def to_frame(self) -> pd.DataFrame:
        """Return observations as a DataFrame with date, value, series_id columns."""
        return pd.DataFrame(
            {
                "date": [obs.date for obs in self.observations],
                "value": [obs.value for obs in self.observations],
                "series_id": [obs.series_id for obs in self.observations],
            },
            columns=["date", "value", "series_id"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "series_id": self.series_id,
            "from_cache": self.from_cache,
            "stale": self.stale,
            "fetched_at": self.fetched_at.isoformat(),
            "observations": [obs.to_dict() for obs in self.observations],
        }
