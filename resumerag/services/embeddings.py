import asyncio
from typing import List, Optional, Sequence

import numpy as np
import requests

from resumerag import config
from resumerag.utils.exceptions import (
    DimensionMismatchError,
    EmbeddingProviderError,
    EmbeddingUnavailableError,
)
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, in [-1, 1].

    Returns exactly 0.0 when either vector is all zeros.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(len(va), len(vb))
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(va, vb)) / norm))


class EmbeddingClient:
    """Client for an OpenAI-compatible /embeddings endpoint.

    The blocking HTTP call runs in the default executor for the async
    variants. Failures are not retried here.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.openai.com/v1",
        model: str = "text-embedding-3-small",
        max_chars: int = 32000,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_chars = max_chars
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _truncate(self, text: str) -> str:
        return (text or "")[: self.max_chars]

    def _request(self, payload_input) -> List[List[float]]:
        if not self.configured:
            raise EmbeddingUnavailableError()

        url = f"{self.base_url}/embeddings"
        try:
            resp = self.session.post(
                url,
                json={"model": self.model, "input": payload_input, "encoding_format": "float"},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()["data"]
            ordered = sorted(data, key=lambda d: d.get("index", 0))
            return [list(map(float, d["embedding"])) for d in ordered]
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"Embedding provider returned HTTP {status}")
            raise EmbeddingProviderError(str(e), provider_status=status, cause=e) from e
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingProviderError(str(e), cause=e) from e

    def embed(self, text: str) -> List[float]:
        vectors = self._request(self._truncate(text))
        if len(vectors) != 1:
            raise EmbeddingProviderError(f"expected 1 vector, got {len(vectors)}")
        return vectors[0]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        vectors = self._request([self._truncate(t) for t in texts])
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(f"expected {len(texts)} vectors, got {len(vectors)}")
        dims = {len(v) for v in vectors}
        if len(dims) > 1:
            raise EmbeddingProviderError(f"provider returned mixed dimensions {sorted(dims)}")
        return vectors

    async def aembed(self, text: str) -> List[float]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.embed, text)

    async def aembed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.embed_batch, list(texts))


_client: Optional[EmbeddingClient] = None


def get_embedding_client() -> EmbeddingClient:
    global _client
    if _client is None:
        _client = EmbeddingClient(
            api_key=config.EMBEDDING_API_KEY,
            base_url=config.EMBEDDING_BASE_URL,
            model=config.EMBEDDING_MODEL,
            max_chars=config.EMBEDDING_MAX_CHARS,
            timeout=config.EMBEDDING_TIMEOUT,
        )
        if not _client.configured:
            logger.warning("No embedding API key configured; ingestion and search will be unavailable")
    return _client


def embedding_status(client: Optional[EmbeddingClient] = None) -> str:
    client = client or get_embedding_client()
    return "ready" if client.configured else "not_configured"
