"""Data ingestion module for econfeed."""

from .base import ProviderRequest, SourceClient
from .exceptions import (
    ConfigurationError,
    FormatError,
    IngestionError,
    ParseError,
    ProviderError,
    TransportError,
    UnknownSourceError,
)
from .models import Observation, SeriesMetadata, SeriesRequest, SeriesResult
from .rate_limiter import RateLimiter
from .registry import SeriesRegistry, create_registry
from .retry import RetryPolicy

__all__ = [
    "SourceClient",
    "ProviderRequest",
    "SeriesRegistry",
    "create_registry",
    "RateLimiter",
    "RetryPolicy",
    "Observation",
    "SeriesMetadata",
    "SeriesRequest",
    "SeriesResult",
    "IngestionError",
    "ConfigurationError",
    "FormatError",
    "TransportError",
    "ProviderError",
    "ParseError",
    "UnknownSourceError",
]
