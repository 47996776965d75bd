"""
Pydantic schemas for request/response validation.

Import all schemas here for easy access.
"""

from app.schemas.admin import (
    CacheClearResponse,
    CacheStatsResponse,
    DashboardResponse,
    ReindexResponse,
)
from app.schemas.chat import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    ClearSessionRequest,
    ClearSessionResponse,
    FeedbackRequest,
    FeedbackResponse,
    SuggestionsResponse,
)
from app.schemas.content import (
    ArticleCreate,
    ArticleResponse,
    ArticleUpdate,
    FaqCreate,
    FaqResponse,
    FaqUpdate,
    Page,
    VideoCreate,
    VideoResponse,
    VideoStatusResponse,
    VideoUpdate,
)

__all__ = [
    # Chat
    "ChatRequest",
    "ChatResponse",
    "ChatHistoryResponse",
    "ClearSessionRequest",
    "ClearSessionResponse",
    "SuggestionsResponse",
    "FeedbackRequest",
    "FeedbackResponse",
    # Content
    "Page",
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleResponse",
    "FaqCreate",
    "FaqUpdate",
    "FaqResponse",
    "VideoCreate",
    "VideoUpdate",
    "VideoResponse",
    "VideoStatusResponse",
    # Admin
    "CacheClearResponse",
    "CacheStatsResponse",
    "DashboardResponse",
    "ReindexResponse",
]
