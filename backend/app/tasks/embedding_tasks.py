"""
Celery tasks for knowledge-base embeddings.

This module contains background tasks for:
- Re-embedding every retrievable article, FAQ and analysed video
  (admin "reindex" button, nightly schedule)
- Filling in embeddings that failed during CRUD (hourly schedule)

Video *analysis* does not run here: it lives in the API process's
MediaAnalysisQueue. These tasks only recompute vectors from text that is
already stored.
"""

import asyncio
import logging
import time

from celery import Task

from app.db.session import AsyncSessionLocal
from app.services.content_service import ContentService
from app.services.processors.embedder import get_embedding_service
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


# ========================================
# Async Helper
# ========================================

def run_async(coro):
    """
    Run async coroutine, handling both event loop and no event loop scenarios.

    - Celery worker (no running loop): asyncio.run()
    - Tests (pytest-asyncio loop already running): run in a separate thread
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    import concurrent.futures

    with concurrent.futures.ThreadPoolExecutor() as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()


# ========================================
# Base Task Class
# ========================================

class EmbeddingTask(Task):
    """Base task class with retry logic and error handling."""

    autoretry_for = (Exception,)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True


async def _reindex(missing_only: bool) -> dict:
    start_time = time.time()

    embedder = await get_embedding_service()
    async with AsyncSessionLocal() as db:
        service = ContentService(db, embedder=embedder)
        counts = await service.reindex_all(missing_only=missing_only)

    return {
        'success': True,
        'missing_only': missing_only,
        'counts': counts,
        'total': sum(counts.values()),
        'processing_time_seconds': round(time.time() - start_time, 2),
    }


# ========================================
# Tasks
# ========================================

@celery_app.task(
    base=EmbeddingTask,
    name='embedding.reindex_all_content',
    bind=True,
)
def reindex_all_content(self) -> dict:
    """
    Recompute embeddings for all retrievable content.

    Returns:
        {
            'success': True,
            'counts': {'articles': 12, 'faqs': 30, 'videos': 4},
            'total': 46,
            'processing_time_seconds': 8.3
        }
    """
    logger.info(f"Starting full reindex (task {self.request.id})")
    result = run_async(_reindex(missing_only=False))
    logger.info(f"Full reindex finished: {result['counts']} in {result['processing_time_seconds']}s")
    return result


@celery_app.task(
    base=EmbeddingTask,
    name='embedding.embed_missing_content',
    bind=True,
)
def embed_missing_content(self) -> dict:
    """Embed retrievable records that were saved without an embedding."""
    result = run_async(_reindex(missing_only=True))
    if result['total']:
        logger.info(f"Embedded {result['total']} records with missing embeddings: {result['counts']}")
    return result
