"""
Pydantic schemas for the admin content API (articles, FAQs, videos).

Create schemas carry the required fields; Update schemas make every field
optional and are applied with ``model_dump(exclude_unset=True)`` so only
the fields the admin actually sent are changed.

Embedding vectors are never returned; ``has_embedding`` says whether the
item is currently retrievable.
"""

from datetime import datetime
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_serializer

from app.models.content import AnalysisStatus, ArticleStatus

ArticleStatusLiteral = Literal["draft", "published", "archived"]

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated list wrapper."""

    items: List[T]
    total: int
    offset: int
    limit: int


class _ContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    created_at: datetime
    updated_at: datetime


# ========================================
# Articles
# ========================================

class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=100)
    tags: List[str] = Field(default_factory=list)
    status: ArticleStatusLiteral = ArticleStatus.DRAFT.value


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tags: Optional[List[str]] = None
    status: Optional[ArticleStatusLiteral] = None


class ArticleResponse(_ContentOut):
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)
    status: str
    has_embedding: bool = False

    @classmethod
    def from_model(cls, article) -> "ArticleResponse":
        response = cls.model_validate(article)
        response.has_embedding = article.embedding is not None
        return response


# ========================================
# FAQs
# ========================================

class FaqCreate(BaseModel):
    question: str = Field(min_length=1, max_length=1000)
    answer: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=100)
    sort_order: int = Field(default=0, ge=0)


class FaqUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    answer: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    sort_order: Optional[int] = Field(default=None, ge=0)


class FaqReorderRequest(BaseModel):
    items: List[int] = Field(description="FAQ ids in the desired display order")


class FaqResponse(_ContentOut):
    question: str
    answer: str
    sort_order: int
    has_embedding: bool = False

    @classmethod
    def from_model(cls, faq) -> "FaqResponse":
        response = cls.model_validate(faq)
        response.has_embedding = faq.embedding is not None
        return response


# ========================================
# Videos
# ========================================

class VideoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    url: HttpUrl
    category: str = Field(min_length=1, max_length=100)
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    @field_serializer("url")
    def url_to_str(self, url: HttpUrl) -> str:
        return str(url)


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    url: Optional[HttpUrl] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    @field_serializer("url")
    def url_to_str(self, url: Optional[HttpUrl]) -> Optional[str]:
        return str(url) if url is not None else None


class VideoTimestampOut(BaseModel):
    time: str
    topic: str


class VideoResponse(_ContentOut):
    title: str
    url: str
    duration_seconds: Optional[int] = None
    summary: Optional[str] = None
    key_topics: List[str] = Field(default_factory=list)
    timestamps: List[VideoTimestampOut] = Field(default_factory=list)
    analysis_status: str
    analysis_error: Optional[str] = None
    analysis_attempts: int = 0
    has_embedding: bool = False

    @classmethod
    def from_model(cls, video) -> "VideoResponse":
        response = cls.model_validate(video)
        response.has_embedding = video.embedding is not None
        return response


class VideoStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    analysis_status: str = Field(description=" | ".join(s.value for s in AnalysisStatus))
    analysis_error: Optional[str] = None
    analysis_attempts: int
