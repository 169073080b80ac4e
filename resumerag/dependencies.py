"""
FastAPI dependencies for dependency injection.

Credential checks happen upstream; this service trusts the ``X-Actor-ID`` and
``X-Actor-Role`` headers set by the gateway in front of it.
"""
from typing import Optional

from fastapi import Depends, Header, Request, Response
from pydantic import BaseModel

from resumerag.services.embeddings import EmbeddingClient, get_embedding_client
from resumerag.services.idempotency import IdempotencyGuard, get_idempotency_guard
from resumerag.services.ingestion import IngestionService
from resumerag.services.matching import MatchScorer
from resumerag.services.rate_limiter import RateLimiter, get_rate_limiter
from resumerag.services.record_store import RecordStore, get_record_store
from resumerag.services.search import SemanticSearchEngine

PRIVILEGED_ROLES = ("recruiter", "admin")


class Actor(BaseModel):
    id: str
    role: str = "user"

    @property
    def sees_pii(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def get_store() -> RecordStore:
    return get_record_store()


def get_embedder() -> EmbeddingClient:
    return get_embedding_client()


def get_guard() -> IdempotencyGuard:
    return get_idempotency_guard()


def get_limiter() -> RateLimiter:
    return get_rate_limiter()


def get_ingestion_service(
    store: RecordStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
) -> IngestionService:
    return IngestionService(store, embedder)


def get_search_engine(
    store: RecordStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
) -> SemanticSearchEngine:
    return SemanticSearchEngine(store, embedder)


def get_match_scorer(store: RecordStore = Depends(get_store)) -> MatchScorer:
    return MatchScorer(store)


async def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Optional[Actor]:
    if not x_actor_id or not x_actor_id.strip():
        return None
    return Actor(id=x_actor_id.strip(), role=(x_actor_role or "user").strip().lower())


async def rate_limited_actor(
    request: Request,
    response: Response,
    actor: Optional[Actor] = Depends(get_actor),
    limiter: RateLimiter = Depends(get_limiter),
) -> Actor:
    """Resolve the actor and charge one request against its quota.

    Raises UnauthenticatedError without an actor and RateLimitExceededError
    once the window quota is used up.
    """
    status = await limiter.check(actor.id if actor else None)
    request.state.rate_limit = status
    for name, value in status.headers().items():
        response.headers[name] = value
    return actor
