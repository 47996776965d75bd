"""
Content Models

This module contains the knowledge-base models the chat assistant answers from.

Models Included:
----------------
1. Article - Long-form patient information, with a draft/published lifecycle
2. Faq - Short question/answer pairs (also used as widget suggestions)
3. Video - Clinic videos, summarised by the media-understanding service
4. ArticleStatus (Enum) - Article lifecycle state
5. AnalysisStatus (Enum) - Video analysis state

Embeddings:
-----------
Every model carries a nullable ``embedding`` (JSON array of floats).
It is null until computed and is recomputed whenever the searchable text
changes while the record is in its "live" state:

- Article: status == published
- Faq: always live
- Video: analysis_status == done (embedding derived from the summary)

Retrieval Projection:
---------------------
``to_content_item()`` turns any of the three into the common shape used by
the semantic retriever: {id, kind, title, body, category, url?, embedding}.
"""

import enum
from typing import Any

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import BaseModel, JSONType, String20, String100, String500, String2000


# ================================
# Enums
# ================================

class ContentKind(str, enum.Enum):
    """The three retrievable content pools."""

    ARTICLE = "article"
    FAQ = "faq"
    VIDEO = "video"

    def __str__(self) -> str:
        return self.value


class ArticleStatus(str, enum.Enum):
    """
    Article lifecycle.

    Only PUBLISHED articles are embedded and retrievable.
    DRAFT → PUBLISHED → ARCHIVED (and back to DRAFT for edits)
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    def __str__(self) -> str:
        return self.value


class AnalysisStatus(str, enum.Enum):
    """
    Video analysis status.

    Status Flow:
    ------------
    PENDING → PROCESSING → DONE                          (success path)
    PENDING → PROCESSING → PENDING (retry) → ... → FAILED (retries exhausted)

    The transient job lives in the in-process queue; this column plus
    analysis_error / analysis_attempts is the durable state.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


# ================================
# Article Model
# ================================

class Article(BaseModel):
    """
    Article model - long-form patient information.

    Table: articles

    Search text is title + content + category + tags; see search_text().
    """

    __tablename__ = "articles"

    title: Mapped[str] = mapped_column(String500, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    category: Mapped[str] = mapped_column(String100, nullable=False, index=True)

    tags: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Free-form tags (JSON array of strings)"
    )

    status: Mapped[str] = mapped_column(
        String20,
        nullable=False,
        default=ArticleStatus.DRAFT.value,
        index=True,
        comment="draft | published | archived"
    )

    embedding: Mapped[list[float] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Embedding of the search text; null until computed"
    )

    @property
    def is_live(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED

    def search_text(self) -> str:
        tags = " ".join(self.tags or [])
        return f"{self.title} {self.content} {self.category} {tags}".strip()

    def to_content_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": ContentKind.ARTICLE.value,
            "title": self.title,
            "body": self.content,
            "category": self.category,
            "url": None,
            "embedding": self.embedding,
        }


# ================================
# FAQ Model
# ================================

class Faq(BaseModel):
    """
    FAQ model - short question/answer pairs.

    Table: faqs

    FAQs have no lifecycle: every FAQ is retrievable, and the questions
    double as the chat widget's suggested prompts (ordered by sort_order).
    """

    __tablename__ = "faqs"

    question: Mapped[str] = mapped_column(Text, nullable=False)

    answer: Mapped[str] = mapped_column(Text, nullable=False)

    category: Mapped[str] = mapped_column(String100, nullable=False, index=True)

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    embedding: Mapped[list[float] | None] = mapped_column(JSONType, nullable=True)

    @property
    def is_live(self) -> bool:
        return True

    def search_text(self) -> str:
        return f"{self.question} {self.answer} {self.category}"

    def to_content_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": ContentKind.FAQ.value,
            "title": self.question,
            "body": self.answer,
            "category": self.category,
            "url": None,
            "embedding": self.embedding,
        }


# ================================
# Video Model
# ================================

class Video(BaseModel):
    """
    Video model - clinic videos understood by an external media service.

    Table: videos

    Analysis Lifecycle:
    -------------------
    1. Admin creates the video → status PENDING, attempts 0, job enqueued
    2. Worker picks it up → PROCESSING, attempts += 1
    3. Media service returns summary/topics/timestamps → embedding computed,
       status DONE, analysis_error cleared
    4. On failure → PENDING with analysis_error (retry scheduled), or
       FAILED once attempts are exhausted

    Changing ``url`` resets attempts and re-runs the whole cycle; changing
    only title/category does not.
    """

    __tablename__ = "videos"

    title: Mapped[str] = mapped_column(String500, nullable=False)

    url: Mapped[str] = mapped_column(String2000, nullable=False)

    category: Mapped[str] = mapped_column(String100, nullable=False, index=True)

    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Filled in by the media-understanding service
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    key_topics: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    timestamps: Mapped[list[dict]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment='[{"time": "02:15", "topic": "..."}]'
    )

    embedding: Mapped[list[float] | None] = mapped_column(JSONType, nullable=True)

    analysis_status: Mapped[str] = mapped_column(
        String20,
        nullable=False,
        default=AnalysisStatus.PENDING.value,
        index=True,
        comment="pending | processing | done | failed"
    )

    analysis_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    analysis_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_live(self) -> bool:
        return self.analysis_status == AnalysisStatus.DONE

    def search_text(self) -> str:
        topics = " ".join(self.key_topics or [])
        return f"{self.title} {self.summary or ''} {topics} {self.category}".strip()

    def to_content_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": ContentKind.VIDEO.value,
            "title": self.title,
            "body": self.summary,
            "category": self.category,
            "url": self.url,
            "embedding": self.embedding,
        }
