"""
Database Models

This module contains all SQLAlchemy ORM models for the application.

Import Structure:
-----------------
Import models from this module to ensure they're registered with SQLAlchemy:

    from app.models import Article, Faq, Video, ConversationTurn

This ensures that:
1. Alembic can detect all models for migrations
2. init_db() creates every table
3. All models are available throughout the app
"""

from app.models.cache import ResponseCacheEntry
from app.models.content import (
    AnalysisStatus,
    Article,
    ArticleStatus,
    ContentKind,
    Faq,
    Video,
)
from app.models.conversation import ConversationTurn, MessageRole

# Export all models and enums
__all__ = [
    # Content models
    "Article",
    "Faq",
    "Video",
    # Conversation models
    "ConversationTurn",
    # Cache
    "ResponseCacheEntry",
    # Enums
    "AnalysisStatus",
    "ArticleStatus",
    "ContentKind",
    "MessageRole",
]
