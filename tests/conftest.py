import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["RECORD_STORE"] = "memory"

import re
import zlib

import pytest
from fastapi.testclient import TestClient

from resumerag.services.embeddings import EmbeddingClient
from resumerag.services.idempotency import IdempotencyGuard
from resumerag.services.rate_limiter import RateLimiter
from resumerag.services.record_store import InMemoryRecordStore

FAKE_DIMENSION = 32
WORD_RE = re.compile(r"[a-z0-9+#.]+")


class FakeEmbedder(EmbeddingClient):
    """Deterministic bag-of-words vectors; no network"""

    def __init__(self, dimension: int = FAKE_DIMENSION):
        super().__init__(api_key="test-key")
        self.dimension = dimension
        self.calls = 0

    def vector(self, text: str):
        vec = [0.0] * self.dimension
        for word in WORD_RE.findall((text or "").lower()):
            vec[zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
        return vec

    def _request(self, payload_input):
        self.calls += 1
        if isinstance(payload_input, str):
            return [self.vector(payload_input)]
        return [self.vector(t) for t in payload_input]


SAMPLE_RESUME = """Jane Doe
jane.doe@example.com
+15551234567

Summary:
Backend engineer with a focus on Python services and data pipelines.

Skills: Python, FastAPI, PostgreSQL; Event Sourcing
Kubernetes

Experience:
2018 - 2021 Software Engineer at Acme Corp
- Built billing APIs in Django
2021 - present Senior Engineer at Globex

Education:
2014 - 2018 BSc Computer Science, State University
"""

SECOND_RESUME = """John Smith
john.smith@example.org
+14445550000

Summary:
Frontend developer building React and TypeScript applications for retail.

Skills: React, TypeScript, CSS

Experience:
2020 - 2023 Frontend Developer at Initech
"""


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def guard():
    return IdempotencyGuard()


@pytest.fixture
def limiter():
    return RateLimiter()


@pytest.fixture
def test_app(store, embedder, guard, limiter):
    from resumerag.dependencies import get_embedder, get_guard, get_limiter, get_store
    from resumerag.main import create_app

    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_guard] = lambda: guard
    app.dependency_overrides[get_limiter] = lambda: limiter
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def sample_resume():
    return SAMPLE_RESUME


@pytest.fixture
def second_resume():
    return SECOND_RESUME
