"""Unit tests for embedding providers."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest

from intent_engine.embeddings import create_embedder
from intent_engine.embeddings.bedrock_client import BedrockClient
from intent_engine.embeddings.st_local import SentenceTransformerEmbedder
from intent_engine.embeddings.titan_embedder import TitanEmbedder


@pytest.fixture
def mock_st_model():
    """Patched SentenceTransformer returning unit vectors of dimension 4."""
    with patch("intent_engine.embeddings.st_local.SentenceTransformer") as cls:
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 4

        def encode(texts, **kwargs):
            return np.tile(np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float32), (len(texts), 1))

        model.encode.side_effect = encode
        cls.return_value = model
        yield cls


class TestSentenceTransformerEmbedder:
    """Test sentence transformer embedder."""

    def test_model_loaded_lazily(self, mock_st_model):
        """The model is not loaded until first use."""
        embedder = SentenceTransformerEmbedder(model_name="test-model")
        mock_st_model.assert_not_called()

        assert embedder.dim == 4
        mock_st_model.assert_called_once_with("test-model")

    def test_encode_shape(self, mock_st_model):
        """Test that encode returns correct shape."""
        embedder = SentenceTransformerEmbedder()

        embeddings = embedder.encode(["hello world", "test embedding"])

        assert embeddings.shape == (2, 4)
        _, kwargs = mock_st_model.return_value.encode.call_args
        assert kwargs["normalize_embeddings"] is True

    def test_encode_empty_list(self, mock_st_model):
        """Test encoding of empty list."""
        embedder = SentenceTransformerEmbedder()

        assert embedder.encode([]).shape == (0, 4)
        mock_st_model.return_value.encode.assert_not_called()

    def test_encode_single_vector_reshaped(self, mock_st_model):
        """A 1-D model output is returned as one row."""
        mock_st_model.return_value.encode.side_effect = None
        mock_st_model.return_value.encode.return_value = np.ones(4, dtype=np.float32)
        embedder = SentenceTransformerEmbedder()

        assert embedder.encode(["hello"]).shape == (1, 4)

    @pytest.mark.asyncio
    async def test_async_embedding(self, mock_st_model):
        """Async methods return the same vectors as encode."""
        embedder = SentenceTransformerEmbedder()

        many = await embedder.embed_many(["a", "b", "c"])
        one = await embedder.embed("a")

        assert many.shape == (3, 4)
        assert one.shape == (4,)
        assert np.allclose(one, many[0])

    def test_repr(self, mock_st_model):
        """Test string representation."""
        embedder = SentenceTransformerEmbedder(model_name="test-model")
        assert "dim=4" in repr(embedder)


class TestTitanEmbedder:
    """Test Titan embedder with a mocked Bedrock client."""

    def client(self, dim=4, fail_on=None):
        client = MagicMock()

        async def invoke(model_id, body, agent_name):
            text = json.loads(body)["inputText"]
            index = int(text.split("-")[1])
            if fail_on is not None and index == fail_on:
                raise RuntimeError("ThrottlingException")
            # Later inputs finish first
            await asyncio.sleep(0.001 * (10 - index))
            vector = [0.0] * dim
            vector[index % dim] = float(index)
            return {"embedding": vector}

        client.invoke_model_async = AsyncMock(side_effect=invoke)
        return client

    def test_request_body_v2(self):
        """v2 models receive dimensions and normalization."""
        embedder = TitanEmbedder(vector_dim=256, bedrock_client=MagicMock())
        body = json.loads(embedder._request_body("hei"))
        assert body == {"inputText": "hei", "dimensions": 256, "normalize": True}

    def test_request_body_v1(self):
        """v1 models receive only the text."""
        embedder = TitanEmbedder(model_id="amazon.titan-embed-text-v1", bedrock_client=MagicMock())
        assert json.loads(embedder._request_body("hei")) == {"inputText": "hei"}

    @pytest.mark.asyncio
    async def test_embed_many_restores_input_order(self):
        """Results come back in input order regardless of completion order."""
        embedder = TitanEmbedder(vector_dim=4, max_concurrency=3, bedrock_client=self.client())

        vectors = await embedder.embed_many([f"text-{i}" for i in range(8)])

        assert vectors.shape == (8, 4)
        for i in range(8):
            assert vectors[i, i % 4] == float(i)

    @pytest.mark.asyncio
    async def test_embed_many_empty(self):
        """No texts means no requests."""
        client = self.client()
        embedder = TitanEmbedder(vector_dim=4, bedrock_client=client)

        assert (await embedder.embed_many([])).shape == (0, 4)
        client.invoke_model_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_many_propagates_errors(self):
        """A failed request fails the whole batch instead of inserting zero vectors."""
        embedder = TitanEmbedder(vector_dim=4, bedrock_client=self.client(fail_on=5))

        with pytest.raises(RuntimeError, match="ThrottlingException"):
            await embedder.embed_many([f"text-{i}" for i in range(8)])

    @pytest.mark.asyncio
    async def test_embed_single(self):
        """A single text is one request."""
        client = self.client()
        embedder = TitanEmbedder(vector_dim=4, bedrock_client=client)

        vector = await embedder.embed("text-2")

        assert vector.tolist() == [0.0, 0.0, 2.0, 0.0]
        assert client.invoke_model_async.await_args.kwargs["agent_name"] == "TitanEmbedder"


class TestBedrockClient:
    """Test the Bedrock transport."""

    @pytest.fixture
    def boto_client(self):
        with patch("intent_engine.embeddings.bedrock_client.boto3.client") as factory:
            client = MagicMock()
            factory.return_value = client
            yield factory, client

    def test_explicit_credentials(self, boto_client):
        """Explicit credentials are passed to boto3."""
        factory, _ = boto_client
        BedrockClient(aws_access_key_id="id", aws_secret_access_key="secret", aws_region="eu-west-1")

        kwargs = factory.call_args.kwargs
        assert kwargs["service_name"] == "bedrock-runtime"
        assert kwargs["region_name"] == "eu-west-1"
        assert kwargs["aws_access_key_id"] == "id"

    def test_credentials_chain(self, boto_client):
        """Without explicit credentials boto3 resolves them itself."""
        factory, _ = boto_client
        BedrockClient()
        assert "aws_access_key_id" not in factory.call_args.kwargs

    def test_invoke_model_reads_body(self, boto_client):
        """The streaming body is read and decoded."""
        _, client = boto_client
        stream = MagicMock()
        stream.read.return_value = b'{"embedding": [1.0, 2.0]}'
        client.invoke_model.return_value = {"body": stream}

        result = BedrockClient().invoke_model("model", '{"inputText": "x"}')

        assert result == {"embedding": [1.0, 2.0]}
        assert client.invoke_model.call_args.kwargs["body"] == b'{"inputText": "x"}'

    def test_invoke_model_error_reraised(self, boto_client, caplog):
        """Errors are logged with a hint and re-raised."""
        _, client = boto_client
        client.invoke_model.side_effect = RuntimeError("ValidationException: use an inference profile")

        with pytest.raises(RuntimeError):
            BedrockClient().invoke_model("model", "{}", agent_name="Test")

        assert "Model access not enabled" in caplog.text

    @pytest.mark.asyncio
    async def test_complete_async(self, boto_client):
        """Completions use the Messages API and return stripped text."""
        _, client = boto_client
        stream = MagicMock()
        stream.read.return_value = json.dumps({"content": [{"text": "  svar  "}]}).encode()
        client.invoke_model.return_value = {"body": stream}

        text = await BedrockClient().complete_async("model", "prompt", max_tokens=100)

        assert text == "svar"
        body = json.loads(client.invoke_model.call_args.kwargs["body"])
        assert body["anthropic_version"] == "bedrock-2023-05-31"
        assert body["max_tokens"] == 100
        assert body["messages"] == [{"role": "user", "content": "prompt"}]


class TestCreateEmbedder:
    """Test provider selection."""

    def test_default_is_local(self, mock_st_model):
        """The local provider is the default."""
        with patch("intent_engine.config.settings.embed_provider", "st_local"):
            assert isinstance(create_embedder(), SentenceTransformerEmbedder)

    def test_titan(self):
        """The titan provider builds a Titan embedder with the configured dimension."""
        with patch("intent_engine.config.settings.embed_provider", "titan"), patch(
            "intent_engine.config.settings.vector_dim", 512
        ), patch("intent_engine.embeddings.titan_embedder.BedrockClient"):
            embedder = create_embedder()

        assert isinstance(embedder, TitanEmbedder)
        assert embedder.dim == 512
