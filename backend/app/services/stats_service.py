"""
Dashboard Statistics

Aggregate queries behind GET /admin/dashboard:
- retrievable content counts
- conversation totals (messages, sessions, emergencies)
- sentiment distribution of user turns
- most frequently asked questions
"""

import logging
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.content import AnalysisStatus, Article, ArticleStatus, Faq, Video
from app.models.conversation import ConversationTurn, MessageRole

logger = logging.getLogger(__name__)


class StatsService:
    """Read-only aggregates over content and conversations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def content_counts(self) -> dict[str, int]:
        articles = await self.db.scalar(
            select(func.count(Article.id)).where(Article.status == ArticleStatus.PUBLISHED.value)
        )
        faqs = await self.db.scalar(select(func.count(Faq.id)))
        videos = await self.db.scalar(
            select(func.count(Video.id)).where(Video.analysis_status == AnalysisStatus.DONE.value)
        )
        return {"articles": articles or 0, "faqs": faqs or 0, "videos": videos or 0}

    async def conversation_totals(self) -> dict[str, int]:
        messages = await self.db.scalar(select(func.count(ConversationTurn.id)))
        user_messages = await self.db.scalar(
            select(func.count(ConversationTurn.id)).where(ConversationTurn.role == MessageRole.USER.value)
        )
        sessions = await self.db.scalar(select(func.count(distinct(ConversationTurn.session_id))))
        emergencies = await self.db.scalar(
            select(func.count(ConversationTurn.id)).where(ConversationTurn.is_emergency.is_(True))
        )
        return {
            "messages": messages or 0,
            "user_messages": user_messages or 0,
            "sessions": sessions or 0,
            "emergencies": emergencies or 0,
        }

    async def sentiment_distribution(self) -> list[dict[str, Any]]:
        """Share of each sentiment tag among user turns, largest first."""
        result = await self.db.execute(
            select(ConversationTurn.sentiment, func.count(ConversationTurn.id))
            .where(
                ConversationTurn.role == MessageRole.USER.value,
                ConversationTurn.sentiment.is_not(None),
            )
            .group_by(ConversationTurn.sentiment)
        )
        rows = [(sentiment, int(count)) for sentiment, count in result.all()]
        total = sum(count for _, count in rows)

        distribution = [
            {
                "sentiment": sentiment,
                "count": count,
                "percentage": round(count / total * 100) if total else 0,
            }
            for sentiment, count in rows
        ]
        distribution.sort(key=lambda bucket: (-bucket["count"], bucket["sentiment"]))
        return distribution

    async def top_questions(self, limit: int = 10) -> list[dict[str, Any]]:
        count = func.count(ConversationTurn.id).label("count")
        result = await self.db.execute(
            select(ConversationTurn.content, count)
            .where(ConversationTurn.role == MessageRole.USER.value)
            .group_by(ConversationTurn.content)
            .order_by(count.desc(), ConversationTurn.content)
            .limit(limit)
        )
        return [{"question": content, "count": int(n)} for content, n in result.all()]
