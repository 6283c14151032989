"""Amazon Titan embedding provider via Bedrock."""

import asyncio
import json
import logging

import numpy as np

from intent_engine.embeddings.bedrock_client import BedrockClient

logger = logging.getLogger(__name__)


class TitanEmbedder:
    """AWS Bedrock Titan embedding provider.

    Titan embeds one text per request, so :meth:`embed_many` fans out with a
    bounded number of in-flight calls and reassembles results by input index.
    """

    def __init__(
        self,
        model_id: str = "amazon.titan-embed-text-v2:0",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_region: str = "us-east-1",
        vector_dim: int = 256,
        max_concurrency: int = 8,
        bedrock_client: BedrockClient | None = None,
    ):
        """
        Initialize the Titan embedder.

        Args:
            model_id: Bedrock Titan model ID.
            aws_access_key_id: AWS access key ID (optional).
            aws_secret_access_key: AWS secret access key (optional).
            aws_region: AWS region for Bedrock.
            vector_dim: Dimension of embeddings (v2 accepts 256, 512 or 1024).
            max_concurrency: Maximum in-flight requests per embed_many call.
            bedrock_client: Preconfigured client, mainly for tests.
        """
        self.model_id = model_id
        self._dim = vector_dim
        self.max_concurrency = max(1, max_concurrency)
        self.bedrock_client = bedrock_client or BedrockClient(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_region=aws_region,
        )
        logger.info(f"Initialized Titan embedder with model: {model_id}")

    @property
    def dim(self) -> int:
        """Return the dimension of embeddings."""
        return self._dim

    def _request_body(self, text: str) -> str:
        payload: dict = {"inputText": text}
        # v1 has a fixed dimension and rejects these fields
        if "v2" in self.model_id:
            payload["dimensions"] = self._dim
            payload["normalize"] = True
        return json.dumps(payload)

    async def embed(self, text: str) -> np.ndarray:
        """Embed a single text with Titan."""
        response_body = await self.bedrock_client.invoke_model_async(
            model_id=self.model_id,
            body=self._request_body(text),
            agent_name="TitanEmbedder",
        )
        return np.asarray(response_body["embedding"], dtype=np.float32)

    async def embed_many(self, texts: list[str]) -> np.ndarray:
        """
        Embed texts with Titan.

        Args:
            texts: List of texts to encode.

        Returns:
            Numpy array of embeddings with shape (len(texts), dim), in input order.
        """
        if not texts:
            return np.empty((0, self._dim), dtype=np.float32)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def embed_indexed(index: int, text: str) -> tuple[int, np.ndarray]:
            async with semaphore:
                return index, await self.embed(text)

        tasks = [asyncio.create_task(embed_indexed(i, t)) for i, t in enumerate(texts)]
        results: list[tuple[int, np.ndarray]] = []
        try:
            for finished in asyncio.as_completed(tasks):
                results.append(await finished)
        except Exception as e:
            logger.error(f"Error encoding texts with Titan: {e}")
            for task in tasks:
                task.cancel()
            raise

        # Completion order is arbitrary
        results.sort(key=lambda item: item[0])
        return np.vstack([vector for _, vector in results])

    def __repr__(self) -> str:
        """String representation."""
        return f"TitanEmbedder(model={self.model_id}, dim={self._dim})"
