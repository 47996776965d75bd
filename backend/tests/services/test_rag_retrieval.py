"""
Tests for semantic retrieval.

This module tests:
- cosine_similarity edge cases
- Score floor, ordering and limit
- ORM objects and plain dicts as candidates
- Embedding failures surfacing as EmbeddingError
"""

from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import EmbeddingError
from app.models.content import Article, ArticleStatus, Faq, Video
from app.services.processors.embedder import cosine_similarity
from app.services.rag.retriever import SearchResult, SemanticRetriever


def stub_embedder(query_vector):
    embedder = AsyncMock()
    embedder.embed_text = AsyncMock(return_value=query_vector)
    return embedder


def item(kind, id, embedding, title=None, category="genel", url=None):
    return {
        "id": id,
        "kind": kind,
        "title": title or f"{kind}-{id}",
        "body": f"{kind} body {id}",
        "category": category,
        "url": url,
        "embedding": embedding,
    }


# ========================================
# cosine_similarity
# ========================================

class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            cosine_similarity([], [])


# ========================================
# SemanticRetriever
# ========================================

@pytest.mark.asyncio
class TestSemanticRetriever:

    async def test_orders_by_score_across_pools(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=0.3)

        results = await retriever.search(
            "soru",
            articles=[item("article", 1, [0.6, 0.8])],
            faqs=[item("faq", 2, [1.0, 0.0])],
            videos=[item("video", 3, [0.8, 0.6], url="https://cdn.example.com/v.mp4")],
            limit=5,
        )

        assert [(r.kind, r.id) for r in results] == [("faq", 2), ("video", 3), ("article", 1)]
        assert results[0].score == pytest.approx(1.0)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    async def test_score_floor_is_exclusive(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=0.6)

        results = await retriever.search(
            "soru",
            faqs=[item("faq", 1, [0.6, 0.8]), item("faq", 2, [0.8, 0.6])],
        )

        # 0.6 is not strictly above the floor
        assert [r.id for r in results] == [2]

    async def test_floor_can_be_disabled(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=None)

        results = await retriever.search("soru", faqs=[item("faq", 1, [0.1, 0.99])])

        assert len(results) == 1

    async def test_per_call_floor_override(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=0.9)

        results = await retriever.search("soru", faqs=[item("faq", 1, [0.6, 0.8])], min_score=0.5)

        assert len(results) == 1

    async def test_limit(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=None)
        faqs = [item("faq", i, [1.0, i / 10]) for i in range(10)]

        results = await retriever.search("soru", faqs=faqs, limit=3)

        assert [r.id for r in results] == [0, 1, 2]

    async def test_ties_keep_pool_order(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=None)

        results = await retriever.search(
            "soru",
            articles=[item("article", 7, [1.0, 0.0])],
            faqs=[item("faq", 7, [1.0, 0.0])],
            videos=[item("video", 7, [1.0, 0.0])],
        )

        assert [r.kind for r in results] == ["article", "faq", "video"]

    async def test_candidates_without_embedding_are_skipped(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=None)

        results = await retriever.search(
            "soru",
            faqs=[item("faq", 1, None), item("faq", 2, [1.0, 0.0])],
        )

        assert [r.id for r in results] == [2]

    async def test_accepts_orm_objects(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]), min_score=0.3)
        article = Article(
            id=5, title="Transfer günü", content="Transfer günü neler olur",
            category="transfer", tags=[], status=ArticleStatus.PUBLISHED.value,
            embedding=[1.0, 0.0],
        )
        faq = Faq(id=6, question="Beta ne zaman?", answer="12. gün", category="beta", embedding=[0.9, 0.1])
        video = Video(
            id=7, title="OPU", url="https://cdn.example.com/opu.mp4", category="opu",
            summary="Yumurta toplama", embedding=[0.7, 0.7],
        )

        results = await retriever.search("soru", articles=[article], faqs=[faq], videos=[video])

        assert [r.kind for r in results] == ["article", "faq", "video"]
        assert results[0].title == "Transfer günü"
        assert results[1].title == "Beta ne zaman?"
        assert results[2].url == "https://cdn.example.com/opu.mp4"

    async def test_empty_pools(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]))
        assert await retriever.search("soru") == []

    async def test_embedding_failure_raises(self):
        embedder = AsyncMock()
        embedder.embed_text = AsyncMock(side_effect=RuntimeError("cuda out of memory"))
        retriever = SemanticRetriever(embedder)

        with pytest.raises(EmbeddingError):
            await retriever.search("soru", faqs=[item("faq", 1, [1.0, 0.0])])

    async def test_missing_embedder_raises(self):
        retriever = SemanticRetriever(None)

        with pytest.raises(EmbeddingError):
            await retriever.search("soru", faqs=[item("faq", 1, [1.0, 0.0])])

    async def test_stored_dimension_mismatch_raises(self):
        retriever = SemanticRetriever(stub_embedder([1.0, 0.0]))

        with pytest.raises(ValueError):
            await retriever.search("soru", faqs=[item("faq", 1, [1.0, 0.0, 0.0])])


class TestSearchResultSource:

    def test_source_without_url(self):
        result = SearchResult(kind="faq", id=3, title="Beta", category="beta", score=0.9)
        assert result.to_source() == {"type": "faq", "id": 3, "title": "Beta", "category": "beta"}

    def test_source_with_url(self):
        result = SearchResult(
            kind="video", id=4, title="OPU", category="opu", score=0.8,
            url="https://cdn.example.com/opu.mp4",
        )
        assert result.to_source()["url"] == "https://cdn.example.com/opu.mp4"
