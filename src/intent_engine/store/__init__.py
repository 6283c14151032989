"""Catalog and corpus sources for the intent engine."""

from intent_engine.store.base import DocumentSource, InMemoryStore, IntentCatalog
from intent_engine.store.json_store import JsonFileStore
from intent_engine.store.redis_store import RedisStore

__all__ = ["IntentCatalog", "DocumentSource", "InMemoryStore", "JsonFileStore", "RedisStore"]
