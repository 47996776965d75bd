"""
Celery tasks for background processing.
"""

from app.tasks.embedding_tasks import (
    embed_missing_content,
    reindex_all_content,
)

__all__ = [
    "reindex_all_content",
    "embed_missing_content",
]
