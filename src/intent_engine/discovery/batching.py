"""Chunked embedding of large corpora."""

import logging
import math

import numpy as np

from intent_engine.embeddings.base import Embedder
from intent_engine.progress import ProgressCallback, report_progress

logger = logging.getLogger(__name__)


async def batch_embed(
    embedder: Embedder,
    texts: list[str],
    batch_size: int = 100,
    on_progress: ProgressCallback | None = None,
    progress_span: tuple[int, int] = (0, 40),
    label: str = "Embedding",
) -> np.ndarray:
    """
    Embed ``texts`` in sequential chunks of ``batch_size``.

    One chunk completes before the next starts, which bounds provider rate
    limit exposure. Provider errors propagate.

    Args:
        embedder: Embedding provider.
        texts: Texts to embed.
        batch_size: Texts per provider call.
        on_progress: Progress sink.
        progress_span: Percent range covered by this step.
        label: Prefix for progress messages.

    Returns:
        Array of shape (len(texts), dim) in input order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    if not texts:
        return np.empty((0, embedder.dim), dtype=np.float64)

    start_pct, end_pct = progress_span
    total_batches = math.ceil(len(texts) / batch_size)
    chunks: list[np.ndarray] = []

    for batch_num, offset in enumerate(range(0, len(texts), batch_size), start=1):
        batch = texts[offset:offset + batch_size]
        pct = start_pct + round((offset / len(texts)) * (end_pct - start_pct))
        report_progress(
            on_progress,
            f"{label} batch {batch_num}/{total_batches} ({offset + len(batch)}/{len(texts)})...",
            pct,
        )

        vectors = np.asarray(await embedder.embed_many(batch), dtype=np.float64)
        if vectors.ndim != 2 or vectors.shape[0] != len(batch):
            raise ValueError(
                f"Embedder returned {vectors.shape[0] if vectors.ndim else 0} vectors "
                f"for a batch of {len(batch)}"
            )
        chunks.append(vectors)

    return np.vstack(chunks)
