"""Base protocol for embedding providers."""

from typing import Protocol

import numpy as np


class Embedder(Protocol):
    """Protocol for embedding providers.

    Both methods are I/O-bound suspension points. Failures propagate to the
    caller; providers never retry or substitute vectors on their own.
    """

    @property
    def dim(self) -> int:
        """Return the dimension of embeddings."""
        ...

    async def embed(self, text: str) -> np.ndarray:
        """
        Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            numpy array of shape (dim,).
        """
        ...

    async def embed_many(self, texts: list[str]) -> np.ndarray:
        """
        Embed texts in one call.

        Args:
            texts: List of text strings to embed.

        Returns:
            numpy array of shape (N, dim), rows in input order.
        """
        ...
