"""
Pydantic schemas for Chat API

This module defines request/response models for the public chat widget
endpoints: chat, history, session clearing, suggestions and feedback.

Response field names follow the widget's JSON contract (``isEmergency``,
``emergencyMessage``) via field aliases.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, ConfigDict


# ========================================
# Chat Schemas
# ========================================

class ChatRequest(BaseModel):
    """
    Request schema for a chat turn.

    Length and emptiness rules are enforced by the chat orchestrator so
    they produce field-specific VALIDATION_ERROR responses.
    """

    message: str = Field(default="", description="Patient's question")
    session_id: str = Field(default="", description="Opaque widget session id")
    stage: Optional[str] = Field(
        default=None,
        description="Treatment stage, e.g. transfer-sonrasi",
        max_length=100
    )


class SourceRef(BaseModel):
    """A knowledge-base item cited by an answer."""

    type: str = Field(description="article | faq | video")
    id: int
    title: str
    category: Optional[str] = None
    url: Optional[str] = None


class ChatResponse(BaseModel):
    """Response schema for a chat turn."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    sources: List[SourceRef] = Field(default_factory=list)
    sentiment: str = Field(description="calm | anxious | fearful | hopeful")
    is_emergency: bool = Field(alias="isEmergency")
    emergency_message: Optional[str] = Field(default=None, alias="emergencyMessage")


# ========================================
# History Schemas
# ========================================

class ConversationTurnResponse(BaseModel):
    """One stored turn."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str = Field(description="user | assistant")
    content: str
    sources: Optional[List[Dict[str, Any]]] = None
    sentiment: Optional[str] = None
    created_at: datetime


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: List[ConversationTurnResponse]
    count: int


class ClearSessionRequest(BaseModel):
    session_id: str = Field(default="")


class ClearSessionResponse(BaseModel):
    deleted: int


# ========================================
# Widget helpers
# ========================================

class SuggestionsResponse(BaseModel):
    suggestions: List[str]
    category: str = Field(description="Requested category or 'all'")
    count: int


class CategoriesResponse(BaseModel):
    categories: List[str]
    count: int


class FeedbackRequest(BaseModel):
    session_id: str = Field(min_length=1, max_length=100)
    message: Optional[str] = Field(default=None, max_length=2000)
    was_helpful: bool


class FeedbackResponse(BaseModel):
    acknowledged: bool = True
    session_id: str
    was_helpful: bool
