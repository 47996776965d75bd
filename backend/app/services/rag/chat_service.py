"""
Chat Orchestrator

The single hot path behind POST /chat. Steps run strictly in order and
each one can end the request:

1. Validate          message non-empty and within length, session_id present
2. Rate limit        charged on every call, before any cache or model work
3. Cache lookup      hit → cached answer + *fresh* sentiment/emergency tags
4. Emergency check   high/medium severity → canned warning, no retrieval,
                     no completion call, nothing cached
5. Answer            retrieve → prompt → complete → strip think tags →
                     cache → log both turns

Failure policy:
---------------
- Validation / rate-limit errors are raised before anything is written.
- Cache reads and writes, and retrieval, are best-effort: a failure is
  logged and the request continues (cache miss / empty context).
- Loading content, the completion call, and saving the exchange are
  required: any failure there surfaces as one ChatFailedError. A missing
  completion client or an answer that is empty after think-tag removal
  fails the same way.
- Validation, rate limiting and the emergency path never touch the
  embedding model or the completion client, so they keep working when
  either is unavailable.
- The emergency turn is saved best-effort; the warning is returned anyway.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import (
    ChatFailedError,
    CompletionError,
    PersistenceError,
    RateLimitError,
    ValidationError,
)
from app.core.rate_limit import RateLimiter
from app.services.cache import ResponseCache
from app.services.content_service import ContentService
from app.services.emergency import EmergencyDetector
from app.services.rag.conversation_service import ConversationService
from app.services.rag.generator import (
    CompletionClient,
    build_context_text,
    build_user_prompt,
    strip_think_tags,
)
from app.services.rag.retriever import SearchResult, SemanticRetriever
from app.services.sentiment import Sentiment, SentimentClassifier

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    answer: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    sentiment: str = Sentiment.CALM.value
    is_emergency: bool = False
    emergency_message: Optional[str] = None
    cached: bool = False


class ChatOrchestrator:
    """
    Composes cache, classifiers, retrieval and generation for one chat turn.

    Usage:
    ------
    orchestrator = ChatOrchestrator(
        rate_limiter=limiter,
        cache=ResponseCache(db),
        content=ContentService(db),
        retriever=SemanticRetriever(embedder),
        completion=completion_client,
        conversations=ConversationService(db),
    )
    result = await orchestrator.chat("Transfer sonrası ne yapmalıyım?", "sess-1", stage="transfer-sonrasi")
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        content: ContentService,
        retriever: SemanticRetriever,
        completion: Optional[CompletionClient],
        conversations: ConversationService,
        sentiment: Optional[SentimentClassifier] = None,
        emergency: Optional[EmergencyDetector] = None,
        max_message_length: Optional[int] = None,
        top_k: Optional[int] = None,
    ):
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.content = content
        self.retriever = retriever
        self.completion = completion
        self.conversations = conversations
        self.sentiment = sentiment or SentimentClassifier()
        self.emergency = emergency or EmergencyDetector()
        self.max_message_length = max_message_length or settings.CHAT_MAX_MESSAGE_LENGTH
        self.top_k = top_k or settings.RAG_TOP_K

    def validate(self, message: Optional[str], session_id: Optional[str]) -> None:
        if message is None or not message.strip():
            raise ValidationError("message", "Message is required")
        if len(message) > self.max_message_length:
            raise ValidationError(
                "message",
                f"Message must be at most {self.max_message_length} characters",
            )
        if session_id is None or not session_id.strip():
            raise ValidationError("session_id", "session_id is required")

    async def chat(self, message: str, session_id: str, stage: Optional[str] = None) -> ChatResult:
        started = time.perf_counter()

        self.validate(message, session_id)

        if not self.rate_limiter.allow(session_id):
            raise RateLimitError(self.rate_limiter.max_requests, self.rate_limiter.window_seconds)

        cached = await self._cache_get(message)

        # Tags always reflect the live message, never the cached one
        mood = self.sentiment.analyze(message)
        alarm = self.emergency.detect(message)
        logger.info(f"Sentiment: {mood.tag} ({mood.confidence:.2f})")

        if cached is not None:
            logger.info(f"Cache hit for session {session_id} in {self._elapsed_ms(started)}ms")
            return ChatResult(
                answer=strip_think_tags(cached.answer),
                sources=cached.sources,
                sentiment=mood.tag.value,
                is_emergency=alarm.is_emergency,
                emergency_message=alarm.message if alarm.is_emergency else None,
                cached=True,
            )

        if alarm.is_emergency:
            logger.warning(f"Emergency detected for session {session_id}: {', '.join(alarm.keywords)}")
            await self._save_emergency_turn(session_id, message, mood.tag.value)
            return ChatResult(
                answer=alarm.message,
                sources=[],
                sentiment=Sentiment.FEARFUL.value,
                is_emergency=True,
                emergency_message=alarm.message,
            )

        if self.completion is None:
            logger.error("Completion service is not configured, cannot answer")
            raise ChatFailedError("Chat failed: could not generate an answer")

        try:
            articles, faqs, videos = await self.content.retrieval_pools()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load knowledge base: {e}")
            raise ChatFailedError("Chat failed: knowledge base unavailable") from e

        results = await self._search(message, articles, faqs, videos)
        logger.info(f"Found {len(results)} relevant results")

        prompt = build_user_prompt(message, build_context_text(results), mood.tag, stage)

        try:
            raw_answer = await self.completion.complete(prompt)
        except CompletionError as e:
            raise ChatFailedError("Chat failed: could not generate an answer") from e

        answer = strip_think_tags(raw_answer)
        if not answer:
            logger.error(f"Completion for session {session_id} was empty after removing think tags")
            raise ChatFailedError("Chat failed: could not generate an answer")

        sources = [result.to_source() for result in results]

        await self._cache_set(message, answer, sources)

        try:
            await self.conversations.add_exchange(session_id, message, answer, sources, mood.tag.value)
        except PersistenceError as e:
            raise ChatFailedError("Chat failed: could not save the conversation") from e

        logger.info(f"Answered session {session_id} in {self._elapsed_ms(started)}ms")

        return ChatResult(
            answer=answer,
            sources=sources,
            sentiment=mood.tag.value,
            is_emergency=False,
        )

    async def _cache_get(self, message: str):
        try:
            return await self.cache.get(message)
        except SQLAlchemyError as e:
            logger.warning(f"Cache lookup failed, continuing without cache: {e}")
            await self._rollback()
            return None

    async def _cache_set(self, message: str, answer: str, sources: list[dict[str, Any]]) -> None:
        try:
            await self.cache.set(message, answer, sources)
        except SQLAlchemyError as e:
            logger.warning(f"Cache write failed: {e}")
            await self._rollback()

    async def _search(self, message: str, articles, faqs, videos) -> list[SearchResult]:
        try:
            return await self.retriever.search(message, articles, faqs, videos, limit=self.top_k)
        except Exception as e:
            logger.warning(f"Semantic search failed, continuing without context: {e}")
            return []

    async def _save_emergency_turn(self, session_id: str, message: str, sentiment: str) -> None:
        try:
            await self.conversations.add_user_message(
                session_id, message, sentiment=sentiment, is_emergency=True
            )
        except PersistenceError as e:
            logger.error(f"Failed to save emergency turn for session {session_id}: {e}")

    async def _rollback(self) -> None:
        try:
            await self.cache.db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after cache failure also failed")

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
