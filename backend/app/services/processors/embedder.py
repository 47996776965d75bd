"""
Embedding Service

This module provides embedding generation using sentence-transformers.
Optimized for local inference with batch processing support.

Model: sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2
- 384 dimensions
- Multilingual (patient questions and clinic content are Turkish)
- Free (no API costs)

Features:
---------
- Batch processing for reindexing
- CPU/CUDA/MPS device support
- Async processing (model calls run in a worker thread) with one retry
- Embedding normalization
- cosine_similarity() used by the semantic retriever
"""

import asyncio
from typing import Optional, Sequence
import logging
import numpy as np
from sentence_transformers import SentenceTransformer
import torch

from app.core.config import settings
from app.core.exceptions import EmbeddingError


logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity: dot(a, b) / (||a|| * ||b||).

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: If a vector is empty or the dimensions differ
    """
    if len(a) == 0 or len(b) == 0:
        raise ValueError("Cannot compare empty vectors")
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} != {len(b)}")

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class EmbeddingService:
    """
    Service for generating embeddings using sentence-transformers.

    Usage:
    ------
    embedder = EmbeddingService()
    await embedder.initialize()

    # Single text
    embedding = await embedder.embed_text("Embriyo transferi nasıl yapılır?")

    # Batch processing
    embeddings = await embedder.embed_texts_batch(["Metin 1", "Metin 2"])

    Every failure surfaces as EmbeddingError so callers can tell
    "embedding unavailable" apart from "nothing matched".
    """

    def __init__(
        self,
        model_name: str = None,
        batch_size: int = None,
        device: str = None,
        normalize: bool = True
    ):
        """
        Initialize the embedding service.

        Args:
            model_name: Model name/path (default from settings)
            batch_size: Batch size for processing (default from settings)
            device: Device to use: cpu, cuda, mps (default from settings)
            normalize: Whether to normalize embeddings (default True)
        """
        self.model_name = model_name or settings.EMBEDDING_MODEL
        self.batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE
        self.device = device or settings.EMBEDDING_DEVICE
        self.normalize = normalize

        self.model: Optional[SentenceTransformer] = None
        self._initialized = False

        self._validate_device()

    def _validate_device(self) -> None:
        """Validate and adjust device setting based on availability."""
        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA not available, falling back to CPU")
            self.device = "cpu"
        elif self.device == "mps" and not torch.backends.mps.is_available():
            logger.warning("MPS not available, falling back to CPU")
            self.device = "cpu"

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Load the model. Called once at application startup.

        Raises:
            EmbeddingError: If model loading fails
        """
        if self._initialized:
            logger.info("Embedding service already initialized")
            return

        try:
            logger.info(f"Loading embedding model: {self.model_name} on {self.device}")

            # Model loading is CPU-bound
            self.model = await asyncio.to_thread(
                SentenceTransformer,
                self.model_name,
                device=self.device
            )

            self._initialized = True

            logger.info(
                f"Embedding model loaded successfully. "
                f"Dimension: {self.get_embedding_dimension()}, "
                f"Device: {self.device}"
            )
        except Exception as e:
            logger.error(f"Failed to load embedding model: {e}")
            raise EmbeddingError(f"Failed to load embedding model: {e}") from e

    def get_embedding_dimension(self) -> int:
        if not self._initialized or self.model is None:
            return settings.EMBEDDING_DIMENSION

        return self.model.get_sentence_embedding_dimension()

    async def embed_text(
        self,
        text: str,
        normalize: Optional[bool] = None,
        retry_on_error: bool = True
    ) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed
            normalize: Override default normalization setting
            retry_on_error: Whether to retry once on error (default True)

        Returns:
            Embedding vector as list of floats

        Raises:
            EmbeddingError: If the service is not initialized or encoding fails
        """
        if not self._initialized:
            raise EmbeddingError("Embedding service not initialized. Call initialize() first.")

        if not text or not text.strip():
            logger.warning("Empty text provided for embedding")
            # Zero vector scores 0 against everything
            return [0.0] * self.get_embedding_dimension()

        use_normalize = normalize if normalize is not None else self.normalize

        try:
            embedding = await asyncio.to_thread(
                self._generate_single_embedding,
                text,
                use_normalize
            )
            return embedding.tolist()

        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            if retry_on_error:
                logger.info("Retrying embedding generation...")
                await asyncio.sleep(1)
                return await self.embed_text(text, normalize, retry_on_error=False)
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

    def _generate_single_embedding(self, text: str, normalize: bool) -> np.ndarray:
        """Generate embedding (sync, runs in thread pool)."""
        return self.model.encode(
            text,
            normalize_embeddings=normalize,
            show_progress_bar=False
        )

    async def embed_texts_batch(
        self,
        texts: list[str],
        normalize: Optional[bool] = None,
        show_progress: bool = False
    ) -> list[list[float]]:
        """
        Generate embeddings for multiple texts in batches.

        Empty texts get a zero vector in their slot so the output stays
        aligned with the input.

        Raises:
            EmbeddingError: If the service is not initialized or encoding fails
        """
        if not self._initialized:
            raise EmbeddingError("Embedding service not initialized. Call initialize() first.")

        if not texts:
            return []

        use_normalize = normalize if normalize is not None else self.normalize
        dim = self.get_embedding_dimension()

        valid_indices = [i for i, text in enumerate(texts) if text and text.strip()]
        if not valid_indices:
            return [[0.0] * dim for _ in texts]

        try:
            embeddings = await asyncio.to_thread(
                self._generate_batch_embeddings,
                [texts[i] for i in valid_indices],
                use_normalize,
                show_progress
            )
        except Exception as e:
            logger.error(f"Error in batch embedding generation: {e}")
            raise EmbeddingError(f"Batch embedding generation failed: {e}") from e

        result: list[list[float]] = [[0.0] * dim for _ in texts]
        for position, index in enumerate(valid_indices):
            result[index] = embeddings[position].tolist()

        return result

    def _generate_batch_embeddings(
        self,
        texts: list[str],
        normalize: bool,
        show_progress: bool
    ) -> np.ndarray:
        """Generate batch embeddings (sync, runs in thread pool)."""
        return self.model.encode(
            texts,
            batch_size=self.batch_size,
            normalize_embeddings=normalize,
            show_progress_bar=show_progress,
            convert_to_numpy=True
        )

    async def shutdown(self) -> None:
        """
        Shutdown the embedding service and free resources.

        Should be called at application shutdown.
        """
        if self.model is not None:
            if self.device == "cuda":
                torch.cuda.empty_cache()

            del self.model
            self.model = None

        self._initialized = False
        logger.info("Embedding service shut down")


# ========================================
# Global Instance Management
# ========================================

_embedding_service: Optional[EmbeddingService] = None


async def get_embedding_service() -> EmbeddingService:
    """
    Get or create the global embedding service instance.

    Used by the Celery worker, which has no FastAPI app.state to hang
    the service on. The model is loaded once per process.
    """
    global _embedding_service

    if _embedding_service is None:
        _embedding_service = EmbeddingService()
        await _embedding_service.initialize()

    return _embedding_service
