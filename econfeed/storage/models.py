"""SQLAlchemy database models."""

from typing import Any

from sqlalchemy import Column, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheEntry(Base):
    """Raw provider response cached under a request key."""

    __tablename__ = "cache_entries"

    key = Column(String(512), primary_key=True)
    source = Column(String(32), nullable=False)
    payload = Column(Text, nullable=False)
    stored_at = Column(Float, nullable=False)  # epoch seconds
    ttl_seconds = Column(Integer, nullable=False)
    size_bytes = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_cache_entries_stored_at", "stored_at"),
        Index("ix_cache_entries_source", "source"),
    )

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "source": self.source,
            "stored_at": self.stored_at,
            "ttl_seconds": self.ttl_seconds,
            "size_bytes": self.size_bytes,
        }
