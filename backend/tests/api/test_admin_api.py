"""
Integration tests for the admin API.

This module tests:
- Admin token enforcement (401 / 403)
- Article, FAQ and video CRUD through HTTP
- Error body format for 404 and validation failures
- Cache management, dashboard and reindex endpoints
"""

from unittest.mock import MagicMock, patch

import pytest
from httpx import AsyncClient

from app.main import app
from app.services.cache import ResponseCache

ADMIN_URL = "/api/v1/admin"

ARTICLE = {
    "title": "Embriyo transferi",
    "content": "Transfer günü yapılacaklar",
    "category": "transfer",
    "tags": ["transfer"],
    "status": "published",
}

FAQ = {"question": "Beta testi ne zaman?", "answer": "Transferden 12 gün sonra.", "category": "beta"}

VIDEO = {"title": "Yumurta toplama", "url": "https://cdn.example.com/opu.mp4", "category": "opu"}


# ========================================
# Authentication
# ========================================

@pytest.mark.asyncio
class TestAdminAuth:

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{ADMIN_URL}/articles")

        assert response.status_code == 401
        assert response.json() == {"detail": "Could not validate credentials"}
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get(f"{ADMIN_URL}/articles", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_expired_token(self, client: AsyncClient, expired_headers):
        response = await client.get(f"{ADMIN_URL}/articles", headers=expired_headers)
        assert response.status_code == 401

    async def test_non_admin_role(self, client: AsyncClient, staff_headers):
        response = await client.get(f"{ADMIN_URL}/dashboard", headers=staff_headers)

        assert response.status_code == 403
        assert response.json() == {"detail": "Admin privileges required"}


# ========================================
# Articles
# ========================================

@pytest.mark.asyncio
class TestAdminArticles:

    async def test_create_and_get(self, client: AsyncClient, admin_headers):
        created = await client.post(f"{ADMIN_URL}/articles", json=ARTICLE, headers=admin_headers)

        assert created.status_code == 201
        article = created.json()
        assert article["status"] == "published"
        assert article["has_embedding"] is True
        assert "embedding" not in article

        fetched = await client.get(f"{ADMIN_URL}/articles/{article['id']}", headers=admin_headers)
        assert fetched.json()["title"] == "Embriyo transferi"

    async def test_default_status_is_draft(self, client: AsyncClient, admin_headers):
        payload = {k: v for k, v in ARTICLE.items() if k != "status"}

        response = await client.post(f"{ADMIN_URL}/articles", json=payload, headers=admin_headers)

        assert response.json()["status"] == "draft"
        assert response.json()["has_embedding"] is False

    async def test_list_filters_and_paginates(self, client: AsyncClient, admin_headers):
        for i in range(3):
            await client.post(f"{ADMIN_URL}/articles", json={**ARTICLE, "title": f"Makale {i}"}, headers=admin_headers)
        await client.post(f"{ADMIN_URL}/articles", json={**ARTICLE, "status": "draft"}, headers=admin_headers)

        response = await client.get(
            f"{ADMIN_URL}/articles",
            params={"status": "published", "page": 2, "limit": 2},
            headers=admin_headers,
        )

        data = response.json()
        assert data["total"] == 3
        assert data["offset"] == 2
        assert data["limit"] == 2
        assert len(data["items"]) == 1

    async def test_archive_removes_embedding(self, client: AsyncClient, admin_headers):
        article = (await client.post(f"{ADMIN_URL}/articles", json=ARTICLE, headers=admin_headers)).json()

        response = await client.put(
            f"{ADMIN_URL}/articles/{article['id']}", json={"status": "archived"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "archived"
        assert response.json()["has_embedding"] is False
        assert response.json()["title"] == ARTICLE["title"]

    async def test_invalid_status(self, client: AsyncClient, admin_headers):
        response = await client.post(
            f"{ADMIN_URL}/articles", json={**ARTICLE, "status": "deleted"}, headers=admin_headers
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "status"

    async def test_not_found(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{ADMIN_URL}/articles/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "NOT_FOUND", "message": "Article with id 999 not found"}
        }

    async def test_delete(self, client: AsyncClient, admin_headers):
        article = (await client.post(f"{ADMIN_URL}/articles", json=ARTICLE, headers=admin_headers)).json()

        response = await client.delete(f"{ADMIN_URL}/articles/{article['id']}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get(f"{ADMIN_URL}/articles/{article['id']}", headers=admin_headers)
        assert response.status_code == 404


# ========================================
# FAQs
# ========================================

@pytest.mark.asyncio
class TestAdminFaqs:

    async def test_create_update(self, client: AsyncClient, admin_headers):
        faq = (await client.post(f"{ADMIN_URL}/faqs", json=FAQ, headers=admin_headers)).json()
        assert faq["has_embedding"] is True
        assert faq["sort_order"] == 0

        response = await client.put(f"{ADMIN_URL}/faqs/{faq['id']}", json={"answer": "12. gün"}, headers=admin_headers)

        assert response.json()["answer"] == "12. gün"
        assert response.json()["question"] == FAQ["question"]

    async def test_reorder(self, client: AsyncClient, admin_headers):
        ids = []
        for question in ("A", "B", "C"):
            faq = (await client.post(f"{ADMIN_URL}/faqs", json={**FAQ, "question": question}, headers=admin_headers)).json()
            ids.append(faq["id"])

        response = await client.patch(
            f"{ADMIN_URL}/faqs/reorder", json={"items": [ids[2], ids[0], ids[1]]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert [f["question"] for f in response.json()] == ["C", "A", "B"]

        listed = await client.get(f"{ADMIN_URL}/faqs", headers=admin_headers)
        assert [f["question"] for f in listed.json()["items"]] == ["C", "A", "B"]

    async def test_reorder_unknown_id(self, client: AsyncClient, admin_headers):
        response = await client.patch(f"{ADMIN_URL}/faqs/reorder", json={"items": [404]}, headers=admin_headers)
        assert response.status_code == 404

    async def test_delete(self, client: AsyncClient, admin_headers):
        faq = (await client.post(f"{ADMIN_URL}/faqs", json=FAQ, headers=admin_headers)).json()

        response = await client.delete(f"{ADMIN_URL}/faqs/{faq['id']}", headers=admin_headers)

        assert response.status_code == 204


# ========================================
# Videos
# ========================================

@pytest.mark.asyncio
class TestAdminVideos:

    async def test_create_without_queue_stays_pending(self, client: AsyncClient, admin_headers):
        response = await client.post(f"{ADMIN_URL}/videos", json=VIDEO, headers=admin_headers)

        assert response.status_code == 201
        video = response.json()
        assert video["url"] == "https://cdn.example.com/opu.mp4"
        assert video["analysis_status"] == "pending"
        assert video["analysis_attempts"] == 0
        assert video["has_embedding"] is False

    async def test_create_enqueues_analysis(self, client: AsyncClient, admin_headers):
        queue = MagicMock()
        app.state.analysis_queue = queue

        video = (await client.post(f"{ADMIN_URL}/videos", json=VIDEO, headers=admin_headers)).json()

        queue.enqueue.assert_called_once_with(video["id"])

    async def test_invalid_url(self, client: AsyncClient, admin_headers):
        response = await client.post(f"{ADMIN_URL}/videos", json={**VIDEO, "url": "not a url"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "url"

    async def test_status_and_reanalyze(self, client: AsyncClient, admin_headers):
        video = (await client.post(f"{ADMIN_URL}/videos", json=VIDEO, headers=admin_headers)).json()

        status = await client.get(f"{ADMIN_URL}/videos/{video['id']}/status", headers=admin_headers)
        assert status.json() == {
            "id": video["id"],
            "analysis_status": "pending",
            "analysis_error": None,
            "analysis_attempts": 0,
        }

        response = await client.post(f"{ADMIN_URL}/videos/{video['id']}/analyze", headers=admin_headers)
        assert response.status_code == 202
        assert response.json()["analysis_status"] == "pending"

    async def test_list_by_analysis_status(self, client: AsyncClient, admin_headers):
        await client.post(f"{ADMIN_URL}/videos", json=VIDEO, headers=admin_headers)

        pending = await client.get(f"{ADMIN_URL}/videos", params={"analysis_status": "pending"}, headers=admin_headers)
        done = await client.get(f"{ADMIN_URL}/videos", params={"analysis_status": "done"}, headers=admin_headers)

        assert pending.json()["total"] == 1
        assert done.json()["total"] == 0


# ========================================
# Operations
# ========================================

@pytest.mark.asyncio
class TestAdminOperations:

    async def test_clear_cache_by_pattern(self, client: AsyncClient, admin_headers, db_session):
        cache = ResponseCache(db_session)
        await cache.set("Transfer sonrası banyo", "Cevap", [])
        await cache.set("Beta testi", "Cevap", [])

        response = await client.delete(f"{ADMIN_URL}/cache", params={"pattern": "TRANSFER"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "pattern": "TRANSFER"}

    async def test_clear_whole_cache(self, client: AsyncClient, admin_headers, db_session):
        await ResponseCache(db_session).set("Beta testi", "Cevap", [])

        response = await client.delete(f"{ADMIN_URL}/cache", headers=admin_headers)

        assert response.json() == {"deleted": 1, "pattern": None}

    async def test_cache_stats(self, client: AsyncClient, admin_headers, db_session):
        cache = ResponseCache(db_session)
        await cache.set("Beta testi", "Cevap", [])
        await cache.get("Beta testi")

        response = await client.get(f"{ADMIN_URL}/cache/stats", headers=admin_headers)

        assert response.json() == {
            "totalEntries": 1,
            "totalHits": 2,
            "avgHits": 2.0,
            "expiredEntries": 0,
            "hitRate": 200,
        }

    async def test_dashboard(self, client: AsyncClient, admin_headers):
        await client.post(f"{ADMIN_URL}/faqs", json=FAQ, headers=admin_headers)
        await client.post("/api/v1/chat", json={"message": "Beta testi ne zaman?", "session_id": "s1"})

        response = await client.get(f"{ADMIN_URL}/dashboard", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["content"] == {"articles": 0, "faqs": 1, "videos": 0}
        assert data["conversations"]["sessions"] == 1
        assert data["conversations"]["user_messages"] == 1
        assert data["top_questions"] == [{"question": "Beta testi ne zaman?", "count": 1}]
        assert data["cache"]["totalEntries"] == 1
        assert data["analysis_queue"] is None

    async def test_dashboard_reports_queue(self, client: AsyncClient, admin_headers):
        queue = MagicMock()
        queue.status.return_value = {"queued": 2, "scheduled_retries": 1, "is_processing": True}
        app.state.analysis_queue = queue

        response = await client.get(f"{ADMIN_URL}/dashboard", headers=admin_headers)

        assert response.json()["analysis_queue"] == {"queued": 2, "scheduled_retries": 1, "is_processing": True}

    async def test_reindex_queues_task(self, client: AsyncClient, admin_headers):
        with patch("app.api.routes.admin_ops.reindex_all_content") as task:
            task.delay.return_value.id = "task-123"

            response = await client.post(f"{ADMIN_URL}/reindex", headers=admin_headers)

        assert response.status_code == 202
        assert response.json() == {"task_id": "task-123", "status": "queued"}
        task.delay.assert_called_once_with()
