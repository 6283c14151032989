"""Configuration management for the intent engine."""

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Operating mode
    # Pilot mode turns missing intent embeddings into a fatal refresh error
    pilot_mode: bool = False
    enable_input_normalization: bool = True
    runtime_debug: bool = False

    # Semantic resolution
    semantic_threshold: float = 0.78
    top_n: int = 3

    # Fuzzy fallback
    # The fallback only runs for semantic scores strictly inside (low_bound, semantic_threshold)
    fuzzy_low_bound: float = 0.60
    fuzzy_min_score: float = 0.75
    fuzzy_cache_ttl_seconds: float = 120.0

    # Embedding configuration
    # Options: "st_local" (Sentence Transformers - local) or "titan" (AWS Bedrock Titan)
    embed_provider: Literal["st_local", "titan"] = "st_local"
    embed_model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    titan_embed_model: str = "amazon.titan-embed-text-v2:0"
    # Titan v2 accepts 256, 512 or 1024; discovery runs on the reduced 256 dimension
    vector_dim: int = 256
    embed_batch_size: int = 100
    titan_max_concurrency: int = 8

    # Discovery clustering
    cluster_k: int = 80
    cluster_max_iter: int = 30
    noise_threshold: int = 3
    overlap_threshold: float = 0.65
    top_cluster_count: int = 15
    new_candidate_count: int = 10
    keywords_per_cluster: int = 8
    cluster_sample_count: int = 5
    candidate_document_count: int = 10

    # Linkage discovery
    linkage_similarity_threshold: float = 0.65
    linkage_min_cluster_size: int = 5
    linkage_max_documents: int = 5000

    # AWS/Bedrock configuration
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    # Can be either a model ID or an inference profile ARN
    label_model: str = "anthropic.claude-3-haiku-20240307-v1:0"

    # Redis catalog configuration
    redis_url: str = "redis://localhost:6379/0"
    intent_key_prefix: str = "ie:intent:"
    document_key_prefix: str = "ie:doc:"


# Global settings instance
settings = Settings()
