"""
Integration tests for the public chat widget API.

This module tests:
- POST /chat answer, emergency, validation and rate-limit responses
- Chat history and session clearing
- Suggestions, categories and feedback
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.core.exceptions import CompletionError
from app.main import app
from app.models.content import Faq
from app.services.cache import ResponseCache
from app.services.rag.generator import NO_CONTEXT_TEXT

CHAT_URL = "/api/v1/chat"


@pytest_asyncio.fixture
async def transfer_faq(db_session, fake_embedder):
    faq = Faq(
        question="Transfer sonrası ne yapmalıyım?",
        answer="İlk gün dinlenin, ağır kaldırmayın.",
        category="transfer",
        sort_order=0,
    )
    faq.embedding = fake_embedder.vector(faq.search_text())
    db_session.add(faq)
    await db_session.commit()
    return faq


# ========================================
# POST /chat
# ========================================

@pytest.mark.asyncio
class TestChatEndpoint:

    async def test_answer_with_sources(self, client: AsyncClient, transfer_faq, fake_completion):
        response = await client.post(CHAT_URL, json={
            "message": "Transfer sonrası yürüyebilir miyim?",
            "session_id": "sess-1",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Transfer sonrası dinlenmeniz önerilir."
        assert data["isEmergency"] is False
        assert "emergencyMessage" not in data
        assert data["sources"] == [{
            "type": "faq",
            "id": transfer_faq.id,
            "title": "Transfer sonrası ne yapmalıyım?",
            "category": "transfer",
        }]
        fake_completion.complete.assert_awaited_once()

    async def test_emergency_short_circuits(self, client: AsyncClient, fake_completion):
        response = await client.post(CHAT_URL, json={
            "message": "Çok şiddetli ağrım var",
            "session_id": "sess-1",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["isEmergency"] is True
        assert data["emergencyMessage"] == data["answer"]
        assert data["sentiment"] == "fearful"
        assert data["sources"] == []
        fake_completion.complete.assert_not_called()

    async def test_empty_message(self, client: AsyncClient):
        response = await client.post(CHAT_URL, json={"message": "   ", "session_id": "sess-1"})

        assert response.status_code == 400
        assert response.json() == {
            "error": {"code": "VALIDATION_ERROR", "message": "Message is required", "field": "message"}
        }

    async def test_message_too_long(self, client: AsyncClient):
        response = await client.post(CHAT_URL, json={"message": "a" * 2001, "session_id": "sess-1"})

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "message"

    async def test_missing_session_id(self, client: AsyncClient):
        response = await client.post(CHAT_URL, json={"message": "Merhaba"})

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "session_id"

    async def test_wrong_body_type(self, client: AsyncClient):
        response = await client.post(CHAT_URL, json={"message": 5, "session_id": "sess-1"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "message"

    async def test_rate_limited(self, client: AsyncClient, rate_limiter):
        for _ in range(10):
            assert rate_limiter.allow("busy-session")

        response = await client.post(CHAT_URL, json={"message": "Merhaba", "session_id": "busy-session"})

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "RATE_LIMIT_EXCEEDED"
        assert "10" in error["message"]

    async def test_completion_not_configured(self, client: AsyncClient, db_session):
        app.state.completion_client = None

        response = await client.post(CHAT_URL, json={"message": "Merhaba", "session_id": "sess-1"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CHAT_FAILED"
        assert await ResponseCache(db_session).stats() == {
            "totalEntries": 0, "totalHits": 0, "avgHits": 0.0, "expiredEntries": 0, "hitRate": 0,
        }

    async def test_think_only_completion_is_not_cached(self, client: AsyncClient, fake_completion, db_session):
        fake_completion.complete.return_value = "<think>Cevap hazırlanıyor</think>"

        response = await client.post(CHAT_URL, json={"message": "Merhaba", "session_id": "sess-1"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CHAT_FAILED"
        assert await ResponseCache(db_session).get("Merhaba") is None

    async def test_completion_failure(self, client: AsyncClient, fake_completion):
        fake_completion.complete.side_effect = CompletionError("overloaded")

        response = await client.post(CHAT_URL, json={"message": "Merhaba", "session_id": "sess-1"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CHAT_FAILED"


# ========================================
# Degraded dependencies
# ========================================

@pytest.mark.asyncio
class TestChatWithoutModels:

    async def test_emergency_without_embedder(self, client: AsyncClient):
        app.state.embedder = None

        response = await client.post(CHAT_URL, json={"message": "Kanama var, kan geldi", "session_id": "sess-1"})

        assert response.status_code == 200
        assert response.json()["isEmergency"] is True

    async def test_emergency_without_completion_client(self, client: AsyncClient):
        app.state.completion_client = None

        response = await client.post(CHAT_URL, json={"message": "Kanama var, kan geldi", "session_id": "sess-1"})

        assert response.status_code == 200
        assert response.json()["isEmergency"] is True

    async def test_validation_without_models(self, client: AsyncClient):
        app.state.embedder = None
        app.state.completion_client = None

        response = await client.post(CHAT_URL, json={"message": "", "session_id": "sess-1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_answers_without_context_when_embedder_missing(
        self, client: AsyncClient, transfer_faq, fake_completion
    ):
        app.state.embedder = None

        response = await client.post(CHAT_URL, json={
            "message": "Transfer sonrası yürüyebilir miyim?",
            "session_id": "sess-1",
        })

        assert response.status_code == 200
        assert response.json()["sources"] == []
        prompt = fake_completion.complete.call_args.args[0]
        assert NO_CONTEXT_TEXT in prompt


# ========================================
# History / session
# ========================================

@pytest.mark.asyncio
class TestHistoryEndpoints:

    async def test_history_after_chat(self, client: AsyncClient):
        await client.post(CHAT_URL, json={"message": "Beta testi ne zaman?", "session_id": "sess-h"})

        response = await client.get(f"{CHAT_URL}/history", params={"session_id": "sess-h"})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
        assert data["messages"][0]["content"] == "Beta testi ne zaman?"

    async def test_history_requires_session(self, client: AsyncClient):
        response = await client.get(f"{CHAT_URL}/history")

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "session_id"

    async def test_clear_session(self, client: AsyncClient):
        await client.post(CHAT_URL, json={"message": "Beta testi ne zaman?", "session_id": "sess-c"})

        response = await client.request("DELETE", f"{CHAT_URL}/session", json={"session_id": "sess-c"})

        assert response.status_code == 200
        assert response.json() == {"deleted": 2}

        history = await client.get(f"{CHAT_URL}/history", params={"session_id": "sess-c"})
        assert history.json()["count"] == 0


# ========================================
# Widget helpers
# ========================================

@pytest.mark.asyncio
class TestWidgetEndpoints:

    async def test_suggestions(self, client: AsyncClient, transfer_faq):
        response = await client.get("/api/v1/suggestions")

        assert response.status_code == 200
        assert response.json() == {
            "suggestions": ["Transfer sonrası ne yapmalıyım?"],
            "category": "all",
            "count": 1,
        }

    async def test_suggestions_by_category(self, client: AsyncClient, transfer_faq):
        response = await client.get("/api/v1/suggestions", params={"category": "beta"})

        assert response.json()["suggestions"] == []
        assert response.json()["category"] == "beta"

    async def test_categories(self, client: AsyncClient, transfer_faq):
        response = await client.get("/api/v1/categories")

        assert response.json() == {"categories": ["transfer"], "count": 1}

    async def test_feedback(self, client: AsyncClient):
        response = await client.post("/api/v1/feedback", json={"session_id": "sess-1", "was_helpful": True})

        assert response.status_code == 200
        assert response.json() == {"acknowledged": True, "session_id": "sess-1", "was_helpful": True}

    async def test_feedback_requires_rating(self, client: AsyncClient):
        response = await client.post("/api/v1/feedback", json={"session_id": "sess-1"})

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "was_helpful"


@pytest.mark.asyncio
class TestHealth:

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
