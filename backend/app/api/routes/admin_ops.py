"""
Admin Operations Routes

- DELETE /admin/cache          clear the response cache (optionally by pattern)
- GET    /admin/cache/stats    cache size and hit statistics
- GET    /admin/dashboard      content, conversation and cache overview
- POST   /admin/reindex        re-embed all content in a Celery worker
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import AnalysisQueueDep, ResponseCacheDep, StatsServiceDep
from app.core.auth import require_admin
from app.schemas.admin import (
    CacheClearResponse,
    CacheStatsResponse,
    ContentCounts,
    ConversationStats,
    DashboardResponse,
    QueueStatus,
    ReindexResponse,
    SentimentBucket,
    TopQuestion,
)
from app.tasks.embedding_tasks import reindex_all_content

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(
    cache: ResponseCacheDep,
    pattern: Optional[str] = Query(default=None, max_length=200),
):
    """Delete cached answers whose query text contains ``pattern``, or all of them."""
    pattern = pattern.strip() if pattern else None
    deleted = await cache.invalidate(pattern or None)

    logger.info(f"Admin cleared {deleted} cache entries (pattern={pattern!r})")
    return CacheClearResponse(deleted=deleted, pattern=pattern or None)


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(cache: ResponseCacheDep):
    return CacheStatsResponse(**await cache.stats())


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    stats: StatsServiceDep,
    cache: ResponseCacheDep,
    queue: AnalysisQueueDep,
    top: int = Query(default=10, ge=1, le=50),
):
    content = await stats.content_counts()
    conversations = await stats.conversation_totals()
    sentiment = await stats.sentiment_distribution()
    questions = await stats.top_questions(limit=top)
    cache_stats = await cache.stats()

    return DashboardResponse(
        content=ContentCounts(**content),
        conversations=ConversationStats(**conversations),
        sentiment=[SentimentBucket(**bucket) for bucket in sentiment],
        top_questions=[TopQuestion(**question) for question in questions],
        cache=CacheStatsResponse(**cache_stats),
        analysis_queue=QueueStatus(**queue.status()) if queue is not None else None,
    )


@router.post("/reindex", response_model=ReindexResponse, status_code=status.HTTP_202_ACCEPTED)
async def reindex():
    """Queue a full re-embedding of articles, FAQs and analyzed videos."""
    task = reindex_all_content.delay()
    logger.info(f"Queued content reindex task {task.id}")
    return ReindexResponse(task_id=str(task.id))
