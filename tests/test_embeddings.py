from unittest.mock import MagicMock

import pytest
import requests

from resumerag.services.embeddings import EmbeddingClient, cosine_similarity, embedding_status
from resumerag.utils.exceptions import (
    DimensionMismatchError,
    EmbeddingProviderError,
    EmbeddingUnavailableError,
)


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error", response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


def _client(*responses, **kwargs):
    session = MagicMock()
    session.post.side_effect = list(responses)
    return EmbeddingClient(api_key="sk-test", session=session, **kwargs), session


class TestCosineSimilarity:
    """Test cases for cosine similarity"""

    def test_identical_vectors(self):
        """Test a vector against itself"""
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_and_opposite(self):
        """Test orthogonal and opposite vectors"""
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)

    def test_symmetric(self):
        """Test argument order does not matter"""
        a, b = [0.3, -0.2, 0.9], [0.1, 0.4, 0.5]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_zero_vector(self):
        """Test a zero vector gives exactly 0.0"""
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0

    def test_dimension_mismatch(self):
        """Test vectors of different lengths are rejected"""
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity([1, 0], [1, 0, 0])
        assert exc_info.value.details == {"expected": 2, "actual": 3}


class TestEmbeddingClient:
    """Test cases for the embedding provider client"""

    def test_missing_key_is_unavailable(self):
        """Test no credential means no provider call"""
        session = MagicMock()
        client = EmbeddingClient(api_key="", session=session)

        with pytest.raises(EmbeddingUnavailableError):
            client.embed("hello")
        session.post.assert_not_called()
        assert embedding_status(client) == "not_configured"

    def test_embed_posts_model_and_input(self):
        """Test the request body and auth header"""
        client, session = _client(_response({"data": [{"index": 0, "embedding": [0.1, 0.2]}]}))

        assert client.embed("hello") == [0.1, 0.2]

        _, kwargs = session.post.call_args
        assert session.post.call_args[0][0] == "https://api.openai.com/v1/embeddings"
        assert kwargs["json"]["input"] == "hello"
        assert kwargs["json"]["model"] == "text-embedding-3-small"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert embedding_status(client) == "ready"

    def test_input_is_truncated(self):
        """Test input longer than the character ceiling is cut"""
        client, session = _client(_response({"data": [{"index": 0, "embedding": [1.0]}]}), max_chars=5)

        client.embed("abcdefghij")

        assert session.post.call_args[1]["json"]["input"] == "abcde"

    def test_http_error_is_provider_error(self):
        """Test a non-2xx response surfaces as a retryable provider error"""
        client, _ = _client(_response({}, status=500))

        with pytest.raises(EmbeddingProviderError) as exc_info:
            client.embed("hello")
        assert exc_info.value.retryable
        assert exc_info.value.details["provider_status"] == 500
        assert exc_info.value.message.startswith("Failed to generate embedding")

    def test_network_error_is_provider_error(self):
        """Test transport failures surface as provider errors"""
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("connection refused")
        client = EmbeddingClient(api_key="sk-test", session=session)

        with pytest.raises(EmbeddingProviderError):
            client.embed("hello")

    def test_malformed_body_is_provider_error(self):
        """Test a response without the data list"""
        client, _ = _client(_response({"unexpected": True}))

        with pytest.raises(EmbeddingProviderError):
            client.embed("hello")

    def test_batch_is_ordered_by_index(self):
        """Test batch results follow input order, not response order"""
        client, _ = _client(_response({"data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1.0, 0.0]},
        ]}))

        assert client.embed_batch(["first", "second"]) == [[1.0, 0.0], [0.0, 1.0]]

    def test_batch_count_mismatch(self):
        """Test a provider returning fewer vectors than inputs"""
        client, _ = _client(_response({"data": [{"index": 0, "embedding": [1.0]}]}))

        with pytest.raises(EmbeddingProviderError):
            client.embed_batch(["a", "b"])

    def test_empty_batch(self):
        """Test an empty batch needs no provider call"""
        client, session = _client()
        assert client.embed_batch([]) == []
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_async_embed(self, embedder):
        """Test the async variant returns the same vector"""
        assert await embedder.aembed("python fastapi") == embedder.embed("python fastapi")
