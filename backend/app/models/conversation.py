"""
Conversation Models

This module contains the chat transcript model.

Models Included:
----------------
1. ConversationTurn - One message in a patient's chat session
2. MessageRole (Enum) - Role of message sender

Database Tables:
----------------
- conversations: one row per turn, grouped by the anonymous session_id

There is no user table: the widget is anonymous and a session is just the
opaque id the browser generates. Turns are append-only; clearing a session
deletes all of its rows.
"""

import enum

from sqlalchemy import Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import BaseModel, JSONType, String20, String100


# ================================
# Enums
# ================================

class MessageRole(str, enum.Enum):
    """
    Role of the message sender.

    Follows the Anthropic chat message format, so stored history can be
    replayed as [{"role": ..., "content": ...}] if needed.
    """

    USER = "user"
    ASSISTANT = "assistant"

    def __str__(self) -> str:
        return self.value


# ================================
# Conversation Turn Model
# ================================

class ConversationTurn(BaseModel):
    """
    A single chat turn.

    Table: conversations

    Fields:
    -------
    - session_id: Opaque client session identifier
    - role: user | assistant
    - content: The message text (assistant content is already think-stripped)
    - sources: Citation list for assistant turns, null for user turns
    - sentiment: Mood tag for user turns (calm/anxious/fearful/hopeful)
    - is_emergency: True when the message triggered the emergency warning
    """

    __tablename__ = "conversations"

    session_id: Mapped[str] = mapped_column(String100, nullable=False, index=True)

    role: Mapped[str] = mapped_column(String20, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    sources: Mapped[list[dict] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="[{type, id, title, url?}] for assistant turns"
    )

    sentiment: Mapped[str | None] = mapped_column(String20, nullable=True, index=True)

    is_emergency: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="User turn answered by the emergency warning"
    )

    def __repr__(self) -> str:
        return f"ConversationTurn(id={self.id}, session_id={self.session_id!r}, role={self.role})"
