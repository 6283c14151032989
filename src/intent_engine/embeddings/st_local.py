"""Local sentence-transformers provider for query and corpus embeddings."""

import asyncio
import logging

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Embeds support text on the local machine; no network calls after the model download."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model: SentenceTransformer | None = None
        self._dim: int | None = None

    @property
    def model(self) -> SentenceTransformer:
        # Loading takes seconds, so defer it until the first embedding or dim lookup
        if self._model is None:
            logger.info(f"Loading sentence transformer model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
            self._dim = self._model.get_sentence_embedding_dimension()
        return self._model

    @property
    def dim(self) -> int:
        if self._dim is None:
            self._dim = self.model.get_sentence_embedding_dimension()
        return self._dim

    def encode(self, texts: list[str]) -> np.ndarray:
        """
        Embed texts on the calling thread.

        Returns:
            Unit-length rows of shape (N, dim), in input order.
        """
        if not texts:
            return np.empty((0, self.dim), dtype=np.float32)

        vectors = self.model.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return np.atleast_2d(vectors)

    async def embed_many(self, texts: list[str]) -> np.ndarray:
        """Run ``encode`` in the default executor so refreshes and queries keep interleaving."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.encode, list(texts))

    async def embed(self, text: str) -> np.ndarray:
        rows = await self.embed_many([text])
        return rows[0]

    def __repr__(self) -> str:
        return f"SentenceTransformerEmbedder(model={self.model_name}, dim={self.dim})"
