"""
Admin Content Routes

CRUD for the knowledge base. Every route requires an admin bearer token.

Articles:  /admin/articles[/{id}]
FAQs:      /admin/faqs[/{id}], PATCH /admin/faqs/reorder
Videos:    /admin/videos[/{id}], POST /admin/videos/{id}/analyze,
           GET /admin/videos/{id}/status

Embedding upkeep, analysis queueing and cache invalidation happen inside
ContentService; these handlers only translate HTTP to service calls.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import ContentServiceDep
from app.core.auth import require_admin
from app.schemas.content import (
    ArticleCreate,
    ArticleResponse,
    ArticleStatusLiteral,
    ArticleUpdate,
    FaqCreate,
    FaqReorderRequest,
    FaqResponse,
    FaqUpdate,
    Page,
    VideoCreate,
    VideoResponse,
    VideoStatusResponse,
    VideoUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-content"], dependencies=[Depends(require_admin)])


def _page_params(page: int, limit: int) -> tuple[int, int]:
    return (page - 1) * limit, limit


# ========================================
# Articles
# ========================================

@router.get("/articles", response_model=Page[ArticleResponse])
async def list_articles(
    content: ContentServiceDep,
    status_filter: Optional[ArticleStatusLiteral] = Query(default=None, alias="status"),
    category: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    offset, limit = _page_params(page, limit)
    items, total = await content.list_articles(status_filter, category, offset, limit)
    return Page[ArticleResponse](
        items=[ArticleResponse.from_model(a) for a in items], total=total, offset=offset, limit=limit
    )


@router.post("/articles", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(payload: ArticleCreate, content: ContentServiceDep):
    article = await content.create_article(payload.model_dump())
    return ArticleResponse.from_model(article)


@router.get("/articles/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, content: ContentServiceDep):
    return ArticleResponse.from_model(await content.get_article(article_id))


@router.put("/articles/{article_id}", response_model=ArticleResponse)
async def update_article(article_id: int, payload: ArticleUpdate, content: ContentServiceDep):
    article = await content.update_article(article_id, payload.model_dump(exclude_unset=True))
    return ArticleResponse.from_model(article)


@router.delete("/articles/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(article_id: int, content: ContentServiceDep):
    await content.delete_article(article_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========================================
# FAQs
# ========================================

@router.get("/faqs", response_model=Page[FaqResponse])
async def list_faqs(
    content: ContentServiceDep,
    category: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    offset, limit = _page_params(page, limit)
    items, total = await content.list_faqs(category, offset, limit)
    return Page[FaqResponse](
        items=[FaqResponse.from_model(f) for f in items], total=total, offset=offset, limit=limit
    )


@router.post("/faqs", response_model=FaqResponse, status_code=status.HTTP_201_CREATED)
async def create_faq(payload: FaqCreate, content: ContentServiceDep):
    return FaqResponse.from_model(await content.create_faq(payload.model_dump()))


@router.patch("/faqs/reorder", response_model=list[FaqResponse])
async def reorder_faqs(payload: FaqReorderRequest, content: ContentServiceDep):
    faqs = await content.reorder_faqs(payload.items)
    return [FaqResponse.from_model(f) for f in faqs]


@router.get("/faqs/{faq_id}", response_model=FaqResponse)
async def get_faq(faq_id: int, content: ContentServiceDep):
    return FaqResponse.from_model(await content.get_faq(faq_id))


@router.put("/faqs/{faq_id}", response_model=FaqResponse)
async def update_faq(faq_id: int, payload: FaqUpdate, content: ContentServiceDep):
    faq = await content.update_faq(faq_id, payload.model_dump(exclude_unset=True))
    return FaqResponse.from_model(faq)


@router.delete("/faqs/{faq_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_faq(faq_id: int, content: ContentServiceDep):
    await content.delete_faq(faq_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========================================
# Videos
# ========================================

@router.get("/videos", response_model=Page[VideoResponse])
async def list_videos(
    content: ContentServiceDep,
    category: Optional[str] = None,
    analysis_status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    offset, limit = _page_params(page, limit)
    items, total = await content.list_videos(category, analysis_status, offset, limit)
    return Page[VideoResponse](
        items=[VideoResponse.from_model(v) for v in items], total=total, offset=offset, limit=limit
    )


@router.post("/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(payload: VideoCreate, content: ContentServiceDep):
    """Create a video; analysis is queued in the background."""
    return VideoResponse.from_model(await content.create_video(payload.model_dump()))


@router.get("/videos/{video_id}", response_model=VideoResponse)
async def get_video(video_id: int, content: ContentServiceDep):
    return VideoResponse.from_model(await content.get_video(video_id))


@router.put("/videos/{video_id}", response_model=VideoResponse)
async def update_video(video_id: int, payload: VideoUpdate, content: ContentServiceDep):
    """Changing ``url`` restarts analysis; title/category changes do not."""
    video = await content.update_video(video_id, payload.model_dump(exclude_unset=True))
    return VideoResponse.from_model(video)


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(video_id: int, content: ContentServiceDep):
    await content.delete_video(video_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/videos/{video_id}/analyze", response_model=VideoStatusResponse, status_code=status.HTTP_202_ACCEPTED)
async def analyze_video(video_id: int, content: ContentServiceDep):
    """Reset attempts and queue the video for analysis again."""
    return VideoStatusResponse.model_validate(await content.reanalyze_video(video_id))


@router.get("/videos/{video_id}/status", response_model=VideoStatusResponse)
async def get_video_status(video_id: int, content: ContentServiceDep):
    return VideoStatusResponse.model_validate(await content.get_video(video_id))
