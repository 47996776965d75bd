"""
Content Service

One storage interface for the three knowledge-base models, plus the
lifecycle rules that keep embeddings, the analysis queue and the response
cache consistent with the content.

ContentRepository[Model]
------------------------
Generic create / get_by_id / list / update / delete over an ORM model.
Nothing in it knows about embeddings.

ContentService
--------------
- Article: embedded only while published. Leaving published clears the
  embedding; a change to title/content/category/tags while published
  recomputes it.
- FAQ: always embedded; recomputed when question/answer/category change.
- Video: create → pending + enqueue analysis. A URL change resets
  attempts/error/status and re-enqueues. A title/category change on an
  analysed video only recomputes the embedding.
- Embedding failures are logged; the record is saved with embedding=None
  and the nightly reindex fills it in later.
- Changes that alter what the assistant can retrieve clear the response
  cache (when CACHE_INVALIDATE_ON_CONTENT_CHANGE is on).
"""

import logging
from typing import Any, Generic, Optional, Protocol, Sequence, TypeVar

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import EmbeddingError, NotFoundError, ValidationError
from app.db.base import BaseModel
from app.models.content import AnalysisStatus, Article, ArticleStatus, Faq, Video
from app.services.cache import ResponseCache
from app.services.processors.embedder import EmbeddingService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ARTICLE_SEARCH_FIELDS = {"title", "content", "category", "tags"}
FAQ_SEARCH_FIELDS = {"question", "answer", "category"}
VIDEO_METADATA_FIELDS = {"title", "category"}


class AnalysisEnqueuer(Protocol):
    def enqueue(self, video_id: int) -> bool: ...


# ================================
# Generic repository
# ================================

class ContentRepository(Generic[ModelT]):
    """
    CRUD over a single model.

    Usage:
    ------
    faqs = ContentRepository(db, Faq)
    faq = await faqs.create(question="...", answer="...", category="genel")
    items, total = await faqs.list(filters={"category": "genel"}, offset=0, limit=20)
    """

    def __init__(self, db: AsyncSession, model: type[ModelT]):
        self.db = db
        self.model = model

    async def create(self, **fields: Any) -> ModelT:
        obj = self.model(**fields)
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def get_by_id(self, obj_id: int) -> ModelT:
        obj = await self.db.get(self.model, obj_id)
        if obj is None:
            raise NotFoundError(self.model.__name__, obj_id)
        return obj

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        offset: int = 0,
        limit: int = 20,
        order_by: Optional[Sequence[Any]] = None,
    ) -> tuple[list[ModelT], int]:
        """
        Filtered page of records plus the total count for the filter.

        ``filters`` maps column names to required values; None values are ignored.
        """
        conditions = [
            getattr(self.model, column) == value
            for column, value in (filters or {}).items()
            if value is not None
        ]

        total = await self.db.scalar(
            select(func.count()).select_from(self.model).where(*conditions)
        )

        stmt = select(self.model).where(*conditions)
        stmt = stmt.order_by(*(order_by or (self.model.id.desc(),)))
        result = await self.db.execute(stmt.offset(offset).limit(limit))

        return list(result.scalars().all()), int(total or 0)

    async def all(self, **filters: Any) -> "list[ModelT]":
        conditions = [getattr(self.model, column) == value for column, value in filters.items()]
        result = await self.db.execute(select(self.model).where(*conditions).order_by(self.model.id))
        return list(result.scalars().all())

    async def update(self, obj: ModelT, fields: dict[str, Any]) -> set[str]:
        """
        Apply ``fields`` to ``obj``.

        Returns:
            Names of the columns whose value actually changed
        """
        changed = set()
        for name, value in fields.items():
            if getattr(obj, name) != value:
                setattr(obj, name, value)
                changed.add(name)
        await self.db.flush()
        return changed

    async def delete(self, obj_id: int) -> None:
        obj = await self.get_by_id(obj_id)
        await self.db.delete(obj)
        await self.db.flush()


# ================================
# Lifecycle-aware service
# ================================

class ContentService:
    """
    Knowledge-base operations used by the admin API, the chat pipeline and
    the reindex task.

    Usage:
    ------
    service = ContentService(db, embedder=embedder, analysis_queue=queue)

    article = await service.create_article({"title": "...", "status": "published", ...})
    articles, faqs, videos = await service.retrieval_pools()
    """

    def __init__(
        self,
        db: AsyncSession,
        embedder: Optional[EmbeddingService] = None,
        analysis_queue: Optional[AnalysisEnqueuer] = None,
        invalidate_cache: Optional[bool] = None,
    ):
        self.db = db
        self.embedder = embedder
        self.analysis_queue = analysis_queue
        self.invalidate_cache = (
            settings.CACHE_INVALIDATE_ON_CONTENT_CHANGE if invalidate_cache is None else invalidate_cache
        )

        self.articles = ContentRepository(db, Article)
        self.faqs = ContentRepository(db, Faq)
        self.videos = ContentRepository(db, Video)

    # ---------- helpers ----------

    async def _embed(self, text: str, label: str) -> Optional[list[float]]:
        if self.embedder is None:
            logger.warning(f"No embedder configured, {label} saved without embedding")
            return None
        try:
            return await self.embedder.embed_text(text)
        except EmbeddingError as e:
            logger.error(f"Failed to generate embedding for {label}: {e}")
            return None

    async def _content_changed(self, reason: str) -> None:
        if not self.invalidate_cache:
            return
        deleted = await ResponseCache(self.db).invalidate()
        logger.info(f"Response cache cleared ({reason}): {deleted} entries")

    def _enqueue_analysis(self, video_id: int) -> None:
        if self.analysis_queue is None:
            logger.warning(f"No analysis queue configured, video {video_id} left pending")
            return
        self.analysis_queue.enqueue(video_id)

    # ---------- articles ----------

    async def list_articles(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Article], int]:
        return await self.articles.list({"status": status, "category": category}, offset, limit)

    async def get_article(self, article_id: int) -> Article:
        return await self.articles.get_by_id(article_id)

    async def create_article(self, data: dict[str, Any]) -> Article:
        article = await self.articles.create(**data)

        if article.is_live:
            article.embedding = await self._embed(article.search_text(), f"article {article.id}")

        await self.db.commit()
        logger.info(f"Created article {article.id} ({article.status})")

        if article.is_live:
            await self._content_changed(f"article {article.id} published")
        return article

    async def update_article(self, article_id: int, data: dict[str, Any]) -> Article:
        article = await self.articles.get_by_id(article_id)
        was_live = article.is_live

        changed = await self.articles.update(article, data)

        if article.is_live:
            if not was_live or changed & ARTICLE_SEARCH_FIELDS or article.embedding is None:
                article.embedding = await self._embed(article.search_text(), f"article {article.id}")
        else:
            article.embedding = None

        await self.db.commit()
        logger.info(f"Updated article {article.id}: changed={sorted(changed)}")

        if article.is_live != was_live or (article.is_live and changed & ARTICLE_SEARCH_FIELDS):
            await self._content_changed(f"article {article.id} updated")
        return article

    async def delete_article(self, article_id: int) -> None:
        article = await self.articles.get_by_id(article_id)
        was_live = article.is_live
        await self.articles.delete(article_id)
        await self.db.commit()
        logger.info(f"Deleted article {article_id}")

        if was_live:
            await self._content_changed(f"article {article_id} deleted")

    # ---------- faqs ----------

    async def list_faqs(
        self,
        category: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Faq], int]:
        return await self.faqs.list(
            {"category": category},
            offset,
            limit,
            order_by=(Faq.sort_order, Faq.id),
        )

    async def get_faq(self, faq_id: int) -> Faq:
        return await self.faqs.get_by_id(faq_id)

    async def create_faq(self, data: dict[str, Any]) -> Faq:
        faq = await self.faqs.create(**data)
        faq.embedding = await self._embed(faq.search_text(), f"faq {faq.id}")

        await self.db.commit()
        logger.info(f"Created FAQ {faq.id}")

        await self._content_changed(f"faq {faq.id} created")
        return faq

    async def update_faq(self, faq_id: int, data: dict[str, Any]) -> Faq:
        faq = await self.faqs.get_by_id(faq_id)
        changed = await self.faqs.update(faq, data)

        if changed & FAQ_SEARCH_FIELDS or faq.embedding is None:
            faq.embedding = await self._embed(faq.search_text(), f"faq {faq.id}")

        await self.db.commit()
        logger.info(f"Updated FAQ {faq.id}: changed={sorted(changed)}")

        if changed & FAQ_SEARCH_FIELDS:
            await self._content_changed(f"faq {faq.id} updated")
        return faq

    async def reorder_faqs(self, ordered_ids: Sequence[int]) -> list[Faq]:
        """Set sort_order to each id's position in ``ordered_ids``."""
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("items", "FAQ ids must be unique")

        for position, faq_id in enumerate(ordered_ids):
            faq = await self.faqs.get_by_id(faq_id)
            faq.sort_order = position

        await self.db.commit()
        logger.info(f"Reordered {len(ordered_ids)} FAQs")

        result = await self.db.execute(select(Faq).order_by(Faq.sort_order, Faq.id))
        return list(result.scalars().all())

    async def delete_faq(self, faq_id: int) -> None:
        await self.faqs.delete(faq_id)
        await self.db.commit()
        logger.info(f"Deleted FAQ {faq_id}")

        await self._content_changed(f"faq {faq_id} deleted")

    async def suggestions(self, category: Optional[str] = None, limit: int = 10) -> list[str]:
        """FAQ questions in display order, for the widget's quick questions."""
        stmt = select(Faq.question)
        if category:
            stmt = stmt.where(Faq.category == category)
        stmt = stmt.order_by(Faq.sort_order, Faq.id).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ---------- videos ----------

    async def list_videos(
        self,
        category: Optional[str] = None,
        analysis_status: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Video], int]:
        return await self.videos.list(
            {"category": category, "analysis_status": analysis_status},
            offset,
            limit,
        )

    async def get_video(self, video_id: int) -> Video:
        return await self.videos.get_by_id(video_id)

    async def create_video(self, data: dict[str, Any]) -> Video:
        video = await self.videos.create(
            **data,
            analysis_status=AnalysisStatus.PENDING.value,
            analysis_attempts=0,
            analysis_error=None,
        )
        await self.db.commit()
        logger.info(f"Created video {video.id}, queueing analysis")

        self._enqueue_analysis(video.id)
        return video

    async def update_video(self, video_id: int, data: dict[str, Any]) -> Video:
        video = await self.videos.get_by_id(video_id)
        was_live = video.is_live

        changed = await self.videos.update(video, data)
        url_changed = "url" in changed

        if url_changed:
            self._reset_analysis(video)
        elif video.is_live and changed & VIDEO_METADATA_FIELDS:
            video.embedding = await self._embed(video.search_text(), f"video {video.id}")

        await self.db.commit()
        logger.info(f"Updated video {video.id}: changed={sorted(changed)}")

        if url_changed:
            self._enqueue_analysis(video.id)
            if was_live:
                await self._content_changed(f"video {video.id} source replaced")
        elif video.is_live and changed & VIDEO_METADATA_FIELDS:
            await self._content_changed(f"video {video.id} updated")
        return video

    async def reanalyze_video(self, video_id: int) -> Video:
        video = await self.videos.get_by_id(video_id)
        self._reset_analysis(video)
        await self.db.commit()
        logger.info(f"Re-analysis requested for video {video.id}")

        self._enqueue_analysis(video.id)
        return video

    @staticmethod
    def _reset_analysis(video: Video) -> None:
        video.analysis_status = AnalysisStatus.PENDING.value
        video.analysis_attempts = 0
        video.analysis_error = None
        video.embedding = None

    async def delete_video(self, video_id: int) -> None:
        video = await self.videos.get_by_id(video_id)
        was_live = video.is_live
        await self.videos.delete(video_id)
        await self.db.commit()
        logger.info(f"Deleted video {video_id}")

        if was_live:
            await self._content_changed(f"video {video_id} deleted")

    # ---------- retrieval ----------

    async def retrieval_pools(self) -> tuple[list[Article], list[Faq], list[Video]]:
        """Published articles, all FAQs, and analysed videos."""
        articles = await self.articles.all(status=ArticleStatus.PUBLISHED.value)
        faqs = await self.faqs.all()
        videos = await self.videos.all(analysis_status=AnalysisStatus.DONE.value)
        return articles, faqs, videos

    async def categories(self) -> list[str]:
        """Sorted distinct categories across retrievable content."""
        queries = (
            select(distinct(Article.category)).where(Article.status == ArticleStatus.PUBLISHED.value),
            select(distinct(Faq.category)),
            select(distinct(Video.category)).where(Video.analysis_status == AnalysisStatus.DONE.value),
        )
        found: set[str] = set()
        for stmt in queries:
            result = await self.db.execute(stmt)
            found.update(result.scalars().all())
        return sorted(found)

    async def reindex_all(self, missing_only: bool = False) -> dict[str, int]:
        """
        Recompute embeddings for everything retrievable.

        Args:
            missing_only: Only embed live records whose embedding is null
                (e.g. after an embedding failure during CRUD)

        Returns:
            Count of re-embedded records per kind
        """
        if self.embedder is None:
            raise EmbeddingError("Reindex requires an embedding service")

        articles, faqs, videos = await self.retrieval_pools()
        if missing_only:
            articles = [a for a in articles if a.embedding is None]
            faqs = [f for f in faqs if f.embedding is None]
            videos = [v for v in videos if v.embedding is None]

        counts = {}

        for kind, records in (("articles", articles), ("faqs", faqs), ("videos", videos)):
            if not records:
                counts[kind] = 0
                continue
            embeddings = await self.embedder.embed_texts_batch([r.search_text() for r in records])
            for record, embedding in zip(records, embeddings):
                record.embedding = embedding
            counts[kind] = len(records)

        await self.db.commit()
        logger.info(f"Reindexed content (missing_only={missing_only}): {counts}")

        if any(counts.values()):
            await self._content_changed("reindex")
        return counts
