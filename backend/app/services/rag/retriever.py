"""
Semantic Retriever for RAG

Ranks pre-embedded knowledge-base items (articles, FAQs, videos) against a
question.

Pipeline:
---------
1. Embed the question once (EmbeddingService)
2. Score every candidate that has a stored embedding with cosine similarity
3. Drop candidates at or below the score floor (score > min_score is kept)
4. Merge the three pools, sort by score descending, keep the top ``limit``

Score floor:
------------
One policy for every caller: ``score > RAG_MIN_SCORE`` (default 0.3).
Weakly related content is left out so the model answers "no information"
instead of improvising from noise. Pass ``min_score=None`` to disable.

Failure semantics:
------------------
- Embedding failure raises EmbeddingError ("could not search"), which is
  distinct from an empty result list ("searched, nothing relevant").
- A stored embedding whose dimension differs from the query's raises
  ValueError rather than being silently scored.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from app.core.config import settings
from app.core.exceptions import EmbeddingError
from app.services.processors.embedder import EmbeddingService, cosine_similarity

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass
class SearchResult:
    """One ranked knowledge-base hit."""

    kind: str
    id: int
    title: str
    category: str
    score: float
    body: Optional[str] = None
    url: Optional[str] = None

    def to_source(self) -> dict[str, Any]:
        """Citation shape stored with answers and returned to the widget."""
        source = {"type": self.kind, "id": self.id, "title": self.title, "category": self.category}
        if self.url:
            source["url"] = self.url
        return source


ContentLike = Union[dict[str, Any], Any]


def _as_item(candidate: ContentLike) -> dict[str, Any]:
    if isinstance(candidate, dict):
        return candidate
    return candidate.to_content_item()


class SemanticRetriever:
    """
    Cosine-similarity retriever over the three content pools.

    Usage:
    ------
    retriever = SemanticRetriever(embedder)

    results = await retriever.search(
        "Embriyo transferinden sonra nelere dikkat etmeliyim?",
        articles=published_articles,
        faqs=faqs,
        videos=analysed_videos,
        limit=5,
    )

    Candidates may be ORM objects (anything with ``to_content_item()``)
    or already-projected dicts.
    """

    def __init__(
        self,
        embedder: Optional[EmbeddingService],
        min_score: Optional[float] = _UNSET,
        default_limit: Optional[int] = None,
    ):
        self.embedder = embedder
        self.min_score = settings.RAG_MIN_SCORE if min_score is _UNSET else min_score
        self.default_limit = default_limit or settings.RAG_TOP_K

    async def search(
        self,
        query: str,
        articles: Iterable[ContentLike] = (),
        faqs: Iterable[ContentLike] = (),
        videos: Iterable[ContentLike] = (),
        limit: Optional[int] = None,
        min_score: Optional[float] = _UNSET,
    ) -> list[SearchResult]:
        """
        Rank candidates against ``query``.

        Returns:
            At most ``limit`` results, sorted non-increasing by score

        Raises:
            EmbeddingError: If the query could not be embedded
            ValueError: If a stored embedding has the wrong dimension
        """
        limit = limit or self.default_limit
        floor = self.min_score if min_score is _UNSET else min_score

        if self.embedder is None:
            raise EmbeddingError("Embedding service is not available")

        try:
            query_embedding = await self.embedder.embed_text(query)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Query embedding failed: {e}") from e

        results: list[SearchResult] = []
        scored = 0
        for pool in (articles, faqs, videos):
            for candidate in pool:
                item = _as_item(candidate)
                embedding: Optional[Sequence[float]] = item.get("embedding")
                if not embedding:
                    continue

                score = cosine_similarity(query_embedding, embedding)
                scored += 1
                if floor is not None and score <= floor:
                    continue

                results.append(
                    SearchResult(
                        kind=item["kind"],
                        id=item["id"],
                        title=item["title"],
                        category=item["category"],
                        score=score,
                        body=item.get("body"),
                        url=item.get("url"),
                    )
                )

        # sort() is stable: equal scores keep article → faq → video order
        results.sort(key=lambda r: r.score, reverse=True)
        top = results[:limit]

        logger.info(
            f"Semantic search: scored={scored}, above_floor={len(results)}, "
            f"returned={len(top)}, min_score={floor}"
        )
        return top
