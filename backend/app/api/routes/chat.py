"""
Chat API Routes

Public endpoints used by the embeddable chat widget:
- POST   /chat            ask a question
- GET    /chat/history    read a session's transcript
- DELETE /chat/session    clear a session's transcript

No authentication: a session is the anonymous id the widget generates.
Abuse is bounded by the per-session rate limiter on POST /chat.
"""

import logging

from fastapi import APIRouter, Query

from app.api.deps import ChatOrchestratorDep, ConversationServiceDep
from app.core.exceptions import ValidationError
from app.schemas.chat import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    ClearSessionRequest,
    ClearSessionResponse,
    ConversationTurnResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: ChatRequest, orchestrator: ChatOrchestratorDep):
    """
    Answer a patient question.

    Errors:
        400 VALIDATION_ERROR: empty/over-length message or missing session_id
        429 RATE_LIMIT_EXCEEDED: too many messages from this session
        500 CHAT_FAILED: the answer could not be generated or saved
    """
    result = await orchestrator.chat(request.message, request.session_id, request.stage)

    return ChatResponse(
        answer=result.answer,
        sources=result.sources,
        sentiment=result.sentiment,
        is_emergency=result.is_emergency,
        emergency_message=result.emergency_message,
    )


@router.get("/history", response_model=ChatHistoryResponse)
async def get_history(
    conversations: ConversationServiceDep,
    session_id: str = Query(default="", max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
):
    """Most recent ``limit`` turns of a session, oldest first."""
    if not session_id.strip():
        raise ValidationError("session_id", "session_id is required")

    turns = await conversations.get_history(session_id, limit)

    return ChatHistoryResponse(
        session_id=session_id,
        messages=[ConversationTurnResponse.model_validate(turn) for turn in turns],
        count=len(turns),
    )


@router.delete("/session", response_model=ClearSessionResponse)
async def clear_session(request: ClearSessionRequest, conversations: ConversationServiceDep):
    """Delete every turn of a session."""
    if not request.session_id.strip():
        raise ValidationError("session_id", "session_id is required")

    deleted = await conversations.clear_session(request.session_id)
    return ClearSessionResponse(deleted=deleted)
