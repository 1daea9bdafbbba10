"""Persistent storage module."""

from .cache import CacheStats, SeriesCache
from .models import Base, CacheEntry

__all__ = ["Base", "CacheEntry", "CacheStats", "SeriesCache"]
