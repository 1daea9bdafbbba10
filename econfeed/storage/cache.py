"""Persistent response cache backed by SQLite."""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from econfeed.config.settings import Settings
from econfeed.storage.models import Base, CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache introspection snapshot."""

    entries: int
    expired: int
    size_bytes: int
    max_size_bytes: int
    default_ttl: int
    hits: int
    misses: int
    stale_hits: int
    path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": self.entries,
            "expired": self.expired,
            "size_bytes": self.size_bytes,
            "size_mb": round(self.size_bytes / (1024 * 1024), 3),
            "max_size_bytes": self.max_size_bytes,
            "default_ttl": self.default_ttl,
            "hits": self.hits,
            "misses": self.misses,
            "stale_hits": self.stale_hits,
            "path": self.path,
        }


class SeriesCache:
    """SQLite key/value store with TTL freshness and size-bounded eviction.

    Entries survive restarts. Fresh reads honour each entry's TTL; stale
    reads ignore it and are meant only as a fallback after a failed fetch.
    When the total payload size exceeds ``max_size_bytes`` the oldest
    stored entries are evicted first.
    """

    def __init__(
        self,
        path: str | Path,
        default_ttl: int = 86400,
        max_size_bytes: int = 100 * 1024 * 1024,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.default_ttl = default_ttl
        self.max_size_bytes = max_size_bytes
        self._clock = clock
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._connect_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0
        self.stale_hits = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SeriesCache":
        return cls(
            path=settings.cache_path,
            default_ttl=settings.cache_ttl_seconds,
            max_size_bytes=settings.cache_max_size_bytes,
        )

    @staticmethod
    def make_key(source: str, series_id: str, start_date: date, end_date: date) -> str:
        """Build the deterministic key for a series request."""
        return ":".join([source, series_id, start_date.isoformat(), end_date.isoformat()])

    async def connect(self) -> None:
        """Open the database and create the cache table."""
        async with self._connect_lock:
            if self._engine is not None:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_async_engine(
                f"sqlite+aiosqlite:///{self.path}",
                connect_args={"check_same_thread": False},
            )
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info(f"Opened cache at {self.path}")

    async def close(self) -> None:
        """Dispose the database engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def _session(self) -> AsyncSession:
        if self._session_factory is None:
            await self.connect()
        return self._session_factory()

    async def get(self, key: str, allow_stale: bool = False) -> str | None:
        """Return the cached payload for ``key``.

        Args:
            key: Cache key
            allow_stale: Return the entry even when its TTL has elapsed

        Returns:
            Payload, or None when absent (or expired and not allow_stale)
        """
        async with await self._session() as session:
            entry = await session.get(CacheEntry, key)

        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self._clock()):
            if not allow_stale:
                self.misses += 1
                logger.debug(f"Cache expired: {key}")
                return None
            self.stale_hits += 1
            return entry.payload

        self.hits += 1
        return entry.payload

    async def set(self, key: str, payload: str, ttl: int | None = None) -> None:
        """Store or overwrite ``key`` and evict old entries if over the size bound."""
        size = len(payload.encode("utf-8"))
        entry = CacheEntry(
            key=key,
            source=key.split(":", 1)[0],
            payload=payload,
            stored_at=self._clock(),
            ttl_seconds=self.default_ttl if ttl is None else ttl,
            size_bytes=size,
        )
        async with self._write_lock:
            async with await self._session() as session:
                await session.merge(entry)
                await session.commit()
                await self._evict(session, keep=key)

    async def _evict(self, session: AsyncSession, keep: str) -> int:
        """Delete least-recently-stored entries until the size bound holds."""
        total = await session.scalar(select(func.coalesce(func.sum(CacheEntry.size_bytes), 0)))
        if total <= self.max_size_bytes:
            return 0

        result = await session.execute(
            select(CacheEntry.key, CacheEntry.size_bytes)
            .where(CacheEntry.key != keep)
            .order_by(CacheEntry.stored_at)
        )
        victims = []
        for victim_key, victim_size in result.all():
            if total <= self.max_size_bytes:
                break
            victims.append(victim_key)
            total -= victim_size

        if victims:
            await session.execute(delete(CacheEntry).where(CacheEntry.key.in_(victims)))
            await session.commit()
            logger.info(f"Evicted {len(victims)} cache entries over size limit")
        return len(victims)

    async def delete(self, key: str) -> bool:
        """Delete one entry."""
        async with self._write_lock:
            async with await self._session() as session:
                result = await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
                await session.commit()
        return result.rowcount > 0

    async def clear(self, source: str | None = None) -> int:
        """Delete all entries, or only those of one source."""
        query = delete(CacheEntry)
        if source:
            query = query.where(CacheEntry.source == source)
        async with self._write_lock:
            async with await self._session() as session:
                result = await session.execute(query)
                await session.commit()
        logger.info(f"Cleared {result.rowcount} cache entries")
        return result.rowcount

    async def purge_expired(self) -> int:
        """Delete entries whose TTL has elapsed."""
        now = self._clock()
        async with self._write_lock:
            async with await self._session() as session:
                result = await session.execute(
                    delete(CacheEntry).where(now - CacheEntry.stored_at > CacheEntry.ttl_seconds)
                )
                await session.commit()
        return result.rowcount

    async def stats(self) -> CacheStats:
        """Summarise entry counts, size and hit rates."""
        now = self._clock()
        async with await self._session() as session:
            entries, size = (
                await session.execute(
                    select(
                        func.count(CacheEntry.key),
                        func.coalesce(func.sum(CacheEntry.size_bytes), 0),
                    )
                )
            ).one()
            expired = await session.scalar(
                select(func.count(CacheEntry.key)).where(
                    now - CacheEntry.stored_at > CacheEntry.ttl_seconds
                )
            )

        return CacheStats(
            entries=entries,
            expired=expired or 0,
            size_bytes=size,
            max_size_bytes=self.max_size_bytes,
            default_ttl=self.default_ttl,
            hits=self.hits,
            misses=self.misses,
            stale_hits=self.stale_hits,
            path=str(self.path),
        )
