"""
Widget Helper Routes

Public, unauthenticated endpoints around the chat widget:
- GET  /suggestions   quick-question chips (FAQ questions in display order)
- GET  /categories    categories that currently have retrievable content
- POST /feedback      thumbs up / down on an answer
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import ContentServiceDep
from app.schemas.chat import (
    CategoriesResponse,
    FeedbackRequest,
    FeedbackResponse,
    SuggestionsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["widget"])


@router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    content: ContentServiceDep,
    category: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=10, ge=1, le=20),
):
    category = category.strip() if category else None
    suggestions = await content.suggestions(category=category, limit=limit)

    return SuggestionsResponse(
        suggestions=suggestions,
        category=category or "all",
        count=len(suggestions),
    )


@router.get("/categories", response_model=CategoriesResponse)
async def get_categories(content: ContentServiceDep):
    categories = await content.categories()
    return CategoriesResponse(categories=categories, count=len(categories))


@router.post("/feedback", response_model=FeedbackResponse)
async def submit_feedback(feedback: FeedbackRequest):
    """
    Record answer feedback.

    Feedback is logged only; it is not persisted.
    """
    snippet = feedback.message[:100] if feedback.message else "N/A"
    logger.info(
        f"Feedback received - Session: {feedback.session_id}, "
        f"Helpful: {feedback.was_helpful}, Message: {snippet}"
    )

    return FeedbackResponse(session_id=feedback.session_id, was_helpful=feedback.was_helpful)
