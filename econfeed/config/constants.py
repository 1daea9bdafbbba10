"""Source constants and enumerations."""

from enum import Enum


class Source(str, Enum):
    """Statistical agencies the ingestion layer can query."""

    BEA = "bea"  # Bureau of Economic Analysis
    CENSUS = "census"  # U.S. Census Bureau
    FRED = "fred"  # Federal Reserve Economic Data
    BLS = "bls"  # Bureau of Labor Statistics
    WORLD_BANK = "world_bank"  # World Bank Indicators API


# Requests per minute as (with API key, without API key)
DEFAULT_RATE_LIMITS: dict[Source, tuple[int, int]] = {
    Source.BEA: (100, 30),
    Source.CENSUS: (80, 20),  # 500/day without a key, spread conservatively
    Source.FRED: (120, 120),  # FRED refuses keyless requests outright
    Source.BLS: (50, 10),
    Source.WORLD_BANK: (60, 60),  # no key scheme
}

# Rate limiter window length in seconds
RATE_LIMIT_WINDOW = 60.0

# Sentinel strings providers use for a missing observation
MISSING_VALUE_MARKERS = frozenset({"", ".", "-", "N/A", "NA", "(NA)", "(D)", "(X)", "null"})
