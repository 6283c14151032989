"""Embedding providers for the intent engine."""

from intent_engine.embeddings.base import Embedder
from intent_engine.embeddings.bedrock_client import BedrockClient
from intent_engine.embeddings.st_local import SentenceTransformerEmbedder
from intent_engine.embeddings.titan_embedder import TitanEmbedder


def create_embedder() -> Embedder:
    """Build the embedder selected by ``settings.embed_provider``."""
    from intent_engine.config import settings

    if settings.embed_provider == "titan":
        return TitanEmbedder(
            model_id=settings.titan_embed_model,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_region=settings.aws_region,
            vector_dim=settings.vector_dim,
            max_concurrency=settings.titan_max_concurrency,
        )
    return SentenceTransformerEmbedder(model_name=settings.embed_model_name)


__all__ = [
    "Embedder",
    "SentenceTransformerEmbedder",
    "TitanEmbedder",
    "BedrockClient",
    "create_embedder",
]
