"""
Response Cache Model

Stores finished chat answers keyed by a hash of the normalized question,
so repeated questions skip retrieval and generation entirely.

Table: response_cache

- query_hash: sha256 hex of trim(lower(question)), unique
- hit_count: starts at 1 on insert and is bumped on every hit and re-set
- expires_at: rows past this instant are ignored by lookups; they are not
  deleted eagerly
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import BaseModel, JSONType, String64


class ResponseCacheEntry(BaseModel):
    """One cached answer."""

    __tablename__ = "response_cache"

    query_hash: Mapped[str] = mapped_column(String64, nullable=False, unique=True)

    query_text: Mapped[str] = mapped_column(Text, nullable=False)

    response: Mapped[str] = mapped_column(Text, nullable=False)

    sources: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    hit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"ResponseCacheEntry(id={self.id}, hits={self.hit_count})"
