"""
Pydantic schemas for admin operations: cache management, dashboard and
reindexing.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class CacheClearResponse(BaseModel):
    deleted: int
    pattern: Optional[str] = None


class CacheStatsResponse(BaseModel):
    totalEntries: int
    totalHits: int
    avgHits: float
    expiredEntries: int = 0
    hitRate: int = Field(description="Total hits per entry, as a rounded percentage")


class SentimentBucket(BaseModel):
    sentiment: str
    count: int
    percentage: int


class TopQuestion(BaseModel):
    question: str
    count: int


class ConversationStats(BaseModel):
    messages: int
    user_messages: int
    sessions: int
    emergencies: int


class ContentCounts(BaseModel):
    articles: int
    faqs: int
    videos: int


class QueueStatus(BaseModel):
    queued: int
    scheduled_retries: int
    is_processing: bool


class DashboardResponse(BaseModel):
    content: ContentCounts
    conversations: ConversationStats
    sentiment: List[SentimentBucket]
    top_questions: List[TopQuestion]
    cache: CacheStatsResponse
    analysis_queue: Optional[QueueStatus] = None


class ReindexResponse(BaseModel):
    task_id: str
    status: str = "queued"
