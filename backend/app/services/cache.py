"""
Response Cache

Content-addressed cache for finished chat answers.

Addressing:
-----------
    normalize("  Embriyo Transferi? ") == "embriyo transferi?"
    key = sha256(normalize(query)).hexdigest()

Two questions that differ only in surrounding whitespace or letter case
share one entry.

Semantics:
----------
- get(query): only non-expired rows are visible. A hit bumps hit_count in
  the same UPDATE ... RETURNING statement, so concurrent hits never lose an
  increment and the caller sees the post-increment value.
- set(query, answer, sources): upsert on query_hash. A new hash inserts with
  hit_count = 1; an existing hash overwrites answer/sources/expiry and bumps
  hit_count instead of resetting it.
- invalidate(pattern): deletes rows whose original query text contains
  pattern (case-insensitive); no pattern clears everything.
- TTL is applied at set time (now + ttl). Expired rows are never swept,
  they are just invisible to get().
"""

import hashlib
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.cache import ResponseCacheEntry

logger = get_logger(__name__)


# ================================
# Query addressing
# ================================

def normalize_query(query: str) -> str:
    """Trim and lowercase a query."""
    return query.strip().lower()


def hash_query(query: str) -> str:
    """sha256 hex digest of the normalized query."""
    return hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()


@dataclass
class CachedAnswer:
    """A cache hit as seen by callers."""

    query_hash: str
    query_text: str
    answer: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    hit_count: int = 1
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


# ================================
# Cache
# ================================

class ResponseCache:
    """
    Response cache backed by the ``response_cache`` table.

    Usage:
    ------
    cache = ResponseCache(db)

    cached = await cache.get("IVF kaç gün sürer?")
    if cached is None:
        answer, sources = ...
        await cache.set("IVF kaç gün sürer?", answer, sources)

    The clock is injectable so expiry can be tested without waiting.
    """

    def __init__(
        self,
        db: AsyncSession,
        ttl_hours: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.CACHE_TTL_HOURS)
        self._clock = clock

    def _insert(self):
        dialect = self.db.bind.dialect.name if self.db.bind is not None else "postgresql"
        if dialect == "sqlite":
            return sqlite_insert(ResponseCacheEntry)
        return pg_insert(ResponseCacheEntry)

    async def get(self, query: str) -> Optional[CachedAnswer]:
        """
        Look up a live entry and count the hit.

        Returns:
            CachedAnswer with the incremented hit_count, or None on miss/expiry
        """
        query_hash = hash_query(query)
        started = time.perf_counter()

        stmt = (
            update(ResponseCacheEntry)
            .where(
                ResponseCacheEntry.query_hash == query_hash,
                ResponseCacheEntry.expires_at > self._clock(),
            )
            .values(hit_count=ResponseCacheEntry.hit_count + 1)
            .returning(
                ResponseCacheEntry.query_text,
                ResponseCacheEntry.response,
                ResponseCacheEntry.sources,
                ResponseCacheEntry.hit_count,
                ResponseCacheEntry.created_at,
                ResponseCacheEntry.expires_at,
            )
            .execution_options(synchronize_session=False)
        )

        result = await self.db.execute(stmt)
        row = result.first()
        await self.db.commit()

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        if row is None:
            logger.debug("cache_miss", query_hash=query_hash[:16], elapsed_ms=elapsed_ms)
            return None

        logger.info(
            "cache_hit",
            query_hash=query_hash[:16],
            hit_count=row.hit_count,
            elapsed_ms=elapsed_ms,
        )

        return CachedAnswer(
            query_hash=query_hash,
            query_text=row.query_text,
            answer=row.response,
            sources=list(row.sources or []),
            hit_count=row.hit_count,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    async def set(self, query: str, answer: str, sources: list[dict[str, Any]]) -> None:
        """Insert or refresh the entry for ``query``."""
        query_hash = hash_query(query)
        now = self._clock()
        expires_at = now + self.ttl

        stmt = self._insert().values(
            query_hash=query_hash,
            query_text=query,
            response=answer,
            sources=sources,
            hit_count=1,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ResponseCacheEntry.query_hash],
            set_={
                "response": stmt.excluded.response,
                "sources": stmt.excluded.sources,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
                "hit_count": ResponseCacheEntry.hit_count + 1,
            },
        )

        await self.db.execute(stmt)
        await self.db.commit()

        logger.info("cache_set", query_hash=query_hash[:16], expires_at=expires_at.isoformat())

    async def invalidate(self, pattern: Optional[str] = None) -> int:
        """
        Delete entries whose query text contains ``pattern`` (case-insensitive).

        Returns:
            Number of deleted entries
        """
        stmt = delete(ResponseCacheEntry)
        if pattern:
            stmt = stmt.where(ResponseCacheEntry.query_text.icontains(pattern, autoescape=True))

        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        await self.db.commit()

        deleted = result.rowcount or 0
        logger.info("cache_invalidated", pattern=pattern, deleted=deleted)
        return deleted

    async def stats(self) -> dict[str, Any]:
        """
        Aggregate cache statistics.

        hitRate is total hits per entry as a rounded percentage, matching
        what the admin dashboard displays.
        """
        now = self._clock()
        result = await self.db.execute(
            select(
                func.count(ResponseCacheEntry.id),
                func.coalesce(func.sum(ResponseCacheEntry.hit_count), 0),
                func.avg(ResponseCacheEntry.hit_count),
                func.count(ResponseCacheEntry.id).filter(ResponseCacheEntry.expires_at <= now),
            )
        )
        total_entries, total_hits, avg_hits, expired = result.one()

        total_entries = int(total_entries or 0)
        total_hits = int(total_hits or 0)

        return {
            "totalEntries": total_entries,
            "totalHits": total_hits,
            "avgHits": round(float(avg_hits), 2) if avg_hits is not None else 0.0,
            "expiredEntries": int(expired or 0),
            "hitRate": round(total_hits / total_entries * 100) if total_entries else 0,
        }
