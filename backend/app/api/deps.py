"""
Service Dependencies for FastAPI Routes

Process-wide components (rate limiter, embedding model, completion client,
media analysis queue) are created once in the application lifespan and
kept on ``app.state``. Request-scoped services (cache, content, chat) are
built per request around the request's database session.

Tests replace the state objects directly, or override these callables via
``app.dependency_overrides``.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request

from app.core.rate_limit import RateLimiter
from app.db.deps import DBSession
from app.services.cache import ResponseCache
from app.services.content_service import ContentService
from app.services.processors.embedder import EmbeddingService
from app.services.rag.chat_service import ChatOrchestrator
from app.services.rag.conversation_service import ConversationService
from app.services.rag.generator import CompletionClient
from app.services.rag.retriever import SemanticRetriever
from app.services.stats_service import StatsService
from app.workers.analysis_queue import MediaAnalysisQueue


# ================================
# Process-wide components
# ================================

def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# Either may be None (model failed to load, no API key). Consumers degrade
# at the step that needs them.

def get_embedder(request: Request) -> Optional[EmbeddingService]:
    return getattr(request.app.state, "embedder", None)


def get_completion_client(request: Request) -> Optional[CompletionClient]:
    return getattr(request.app.state, "completion_client", None)


def get_analysis_queue(request: Request) -> Optional[MediaAnalysisQueue]:
    return getattr(request.app.state, "analysis_queue", None)


# ================================
# Request-scoped services
# ================================

def get_response_cache(db: DBSession) -> ResponseCache:
    return ResponseCache(db)


def get_conversation_service(db: DBSession) -> ConversationService:
    return ConversationService(db)


def get_stats_service(db: DBSession) -> StatsService:
    return StatsService(db)


def get_content_service(
    db: DBSession,
    embedder: Annotated[Optional[EmbeddingService], Depends(get_embedder)],
    queue: Annotated[Optional[MediaAnalysisQueue], Depends(get_analysis_queue)],
) -> ContentService:
    # Without a loaded model records are saved unembedded and filled in by the reindex task
    return ContentService(db, embedder=embedder, analysis_queue=queue)


def get_chat_orchestrator(
    db: DBSession,
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    embedder: Annotated[Optional[EmbeddingService], Depends(get_embedder)],
    completion: Annotated[Optional[CompletionClient], Depends(get_completion_client)],
) -> ChatOrchestrator:
    return ChatOrchestrator(
        rate_limiter=rate_limiter,
        cache=ResponseCache(db),
        content=ContentService(db, embedder=embedder),
        retriever=SemanticRetriever(embedder),
        completion=completion,
        conversations=ConversationService(db),
    )


ResponseCacheDep = Annotated[ResponseCache, Depends(get_response_cache)]
ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]
ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
ChatOrchestratorDep = Annotated[ChatOrchestrator, Depends(get_chat_orchestrator)]
StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
AnalysisQueueDep = Annotated[Optional[MediaAnalysisQueue], Depends(get_analysis_queue)]
