"""
RAG (Retrieval-Augmented Generation) Services

This package contains all services for the chat pipeline:
- Semantic retrieval over articles, FAQs and analysed videos
- Prompt building and generation (Claude integration)
- Conversation transcripts
- The chat orchestrator tying them together
"""

from app.services.rag.retriever import SearchResult, SemanticRetriever
from app.services.rag.generator import CompletionClient, build_context_text, build_user_prompt, strip_think_tags
from app.services.rag.conversation_service import ConversationService
from app.services.rag.chat_service import ChatOrchestrator, ChatResult

__all__ = [
    "SearchResult",
    "SemanticRetriever",
    "CompletionClient",
    "build_context_text",
    "build_user_prompt",
    "strip_think_tags",
    "ConversationService",
    "ChatOrchestrator",
    "ChatResult",
]
