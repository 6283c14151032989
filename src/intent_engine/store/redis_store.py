"""Redis-backed canonical intent catalog and staging corpus."""

import logging
from typing import Any

import numpy as np
import redis
import redis.asyncio as aioredis

from intent_engine.types import CanonicalIntent, StagingDocument

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("category", "subcategory", "description", "keywords", "info_text")
_DOCUMENT_TEXT_FIELDS = ("subject", "description", "resolution", "intent")
_DOCUMENT_FLAG_FIELDS = ("auto_close_possible", "follow_up_needed", "auto_closed")


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return value or None


def _flag(value: bytes | str | None) -> bool:
    return _decode(value) in ("1", "true", "True")


def _parse_id(raw: str) -> int | str:
    return int(raw) if raw.isdigit() else raw


class RedisStore:
    """Reads approved intents and staging documents stored as Redis hashes.

    Intents live under ``intent_key_prefix + intent_id`` with the embedding
    stored as FLOAT32 bytes; a hash without an ``embedding`` field is an intent
    whose embedding has not been computed yet.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        intent_key_prefix: str = "ie:intent:",
        document_key_prefix: str = "ie:doc:",
        client: Any | None = None,
    ):
        """
        Initialize the Redis store.

        Args:
            redis_url: Redis connection URL.
            intent_key_prefix: Prefix for canonical intent hashes.
            document_key_prefix: Prefix for staging document hashes.
            client: Preconfigured asyncio Redis client, mainly for tests.
        """
        self.redis_url = redis_url
        self.intent_key_prefix = intent_key_prefix
        self.document_key_prefix = document_key_prefix

        if client is None:
            logger.info(f"Connecting to Redis: {redis_url}")
            client = aioredis.from_url(redis_url, decode_responses=False)
        self.client = client

    async def _load_hashes(self, prefix: str) -> list[tuple[str, dict[bytes, bytes]]]:
        keys = []
        async for key in self.client.scan_iter(match=f"{prefix}*"):
            keys.append(_decode(key))
        keys.sort()

        pipe = self.client.pipeline()
        for key in keys:
            pipe.hgetall(key)
        rows = await pipe.execute() if keys else []
        return list(zip(keys, rows))

    async def list_approved_canonical_intents(self) -> list[CanonicalIntent]:
        """Return approved intents, with ``embedding=None`` where none is stored."""
        intents: list[CanonicalIntent] = []
        for key, row in await self._load_hashes(self.intent_key_prefix):
            if not row or not _flag(row.get(b"approved")):
                continue

            raw_embedding = row.get(b"embedding")
            embedding = (
                np.frombuffer(raw_embedding, dtype=np.float32).tolist() if raw_embedding else None
            )
            intent: CanonicalIntent = {
                "intent_id": _decode(row.get(b"intent_id")) or key[len(self.intent_key_prefix):],
                "category": _decode(row.get(b"category")) or "",
                "subcategory": _decode(row.get(b"subcategory")),
                "description": _decode(row.get(b"description")),
                "keywords": _decode(row.get(b"keywords")),
                "actionable": _flag(row.get(b"actionable")),
                "approved": True,
                "embedding": embedding,
                "info_text": _decode(row.get(b"info_text")),
            }
            intents.append(intent)

        logger.debug(f"Loaded {len(intents)} approved intents from Redis")
        return intents

    async def list_staging_documents(self) -> list[StagingDocument]:
        """Return every staging document hash."""
        documents: list[StagingDocument] = []
        for key, row in await self._load_hashes(self.document_key_prefix):
            if not row:
                continue
            document: StagingDocument = {
                "id": _parse_id(key[len(self.document_key_prefix):]),
                "subject": None,
                "description": None,
                "resolution": None,
            }
            for field in _DOCUMENT_TEXT_FIELDS:
                document[field] = _decode(row.get(field.encode()))
            for field in _DOCUMENT_FLAG_FIELDS:
                document[field] = _flag(row.get(field.encode()))
            confidence = _decode(row.get(b"intent_confidence"))
            document["intent_confidence"] = float(confidence) if confidence else None
            documents.append(document)
        return documents

    async def upsert_intent(self, intent: CanonicalIntent) -> None:
        """
        Write a canonical intent hash.

        Args:
            intent: Intent to store; ``embedding=None`` removes a stored embedding.
        """
        key = f"{self.intent_key_prefix}{intent['intent_id']}"
        mapping: dict[str, Any] = {
            "intent_id": intent["intent_id"],
            "actionable": "1" if intent.get("actionable") else "0",
            "approved": "1" if intent.get("approved") else "0",
        }
        for field in _TEXT_FIELDS:
            mapping[field] = intent.get(field) or ""

        pipe = self.client.pipeline()
        pipe.hset(key, mapping=mapping)
        if intent.get("embedding") is not None:
            embedding_bytes = np.asarray(intent["embedding"], dtype=np.float32).tobytes()
            pipe.hset(key, "embedding", embedding_bytes)
        else:
            pipe.hdel(key, "embedding")
        await pipe.execute()
        logger.info(f"Stored intent: {intent['intent_id']}")

    async def upsert_document(self, document: StagingDocument) -> None:
        """Write a staging document hash."""
        key = f"{self.document_key_prefix}{document['id']}"
        mapping: dict[str, Any] = {}
        for field in _DOCUMENT_TEXT_FIELDS:
            mapping[field] = document.get(field) or ""
        for field in _DOCUMENT_FLAG_FIELDS:
            mapping[field] = "1" if document.get(field) else "0"
        confidence = document.get("intent_confidence")
        mapping["intent_confidence"] = "" if confidence is None else str(confidence)
        await self.client.hset(key, mapping=mapping)

    async def health_check(self) -> bool:
        """
        Check Redis health.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            await self.client.ping()
            return True
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.client.aclose()

    def __repr__(self) -> str:
        """String representation."""
        return f"RedisStore(url={self.redis_url}, intents={self.intent_key_prefix}*)"
