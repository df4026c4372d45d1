"""
Embedding Generator Module

Generates embeddings using sentence-transformers.
Features:
- Lazy model loading off the event loop
- CPU/GPU device selection
- Mean-pooled, L2-normalised sentence vectors
"""
import asyncio
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from .errors import EmbeddingFailed
from .logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Embedding capability consumed by the retrieval engine."""

    @property
    def is_loaded(self) -> bool: ...

    async def load(self) -> None: ...

    async def embed(self, text: str) -> np.ndarray: ...


class EmbeddingGenerator:
    """
    Generates embeddings using sentence-transformers.

    Supported models include:
    - all-MiniLM-L6-v2 (fast, 384 dimensions)
    - all-mpnet-base-v2 (balanced, 768 dimensions)
    - multi-qa-MiniLM-L6-cos-v1 (QA optimized, 384 dimensions)
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: Optional[str] = None):
        """
        Initialize the embedding generator. The model itself is loaded by ``load``.

        Args:
            model_name: Name of the sentence-transformers model
            device: Device to use ('cpu' or 'cuda'). If None, will auto-detect.
        """
        self.model_name = model_name
        self.device = device
        self._model = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def load(self) -> None:
        """Load the model in a worker thread. No-op once loaded."""
        if self._model is not None:
            return
        self._model = await asyncio.to_thread(self._load_model)

    def _load_model(self):
        import torch
        from sentence_transformers import SentenceTransformer

        if self.device is None:
            self.device = "cuda" if torch.cuda.is_available() else "cpu"

        logger.info("Loading embedding model: %s (device=%s)", self.model_name, self.device)
        model = SentenceTransformer(self.model_name, device=self.device)
        logger.info("Embedding model loaded (dim=%s)", model.get_sentence_embedding_dimension())
        return model

    def embed_text(self, text: str) -> np.ndarray:
        """
        Embed a single text string.

        Args:
            text: Text to embed

        Returns:
            Normalised embedding vector as numpy array
        """
        if self._model is None:
            raise EmbeddingFailed(f"Embedding model {self.model_name} is not loaded")
        return self._model.encode(text, convert_to_numpy=True, normalize_embeddings=True)

    async def embed(self, text: str) -> np.ndarray:
        """Embed a text string without blocking the event loop."""
        if self._model is None:
            raise EmbeddingFailed(f"Embedding model {self.model_name} is not loaded")
        return await asyncio.to_thread(self.embed_text, text)

