from typing import List

from resumerag.models.models import SearchHit
from resumerag.services.embeddings import EmbeddingClient
from resumerag.services.record_store import RecordStore
from resumerag.utils.exceptions import ValidationError
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)

MIN_K = 1
MAX_K = 20
SNIPPET_WINDOW = 150
SNIPPET_STEP = 50


def clamp_k(k) -> int:
    try:
        k = int(k)
    except (TypeError, ValueError):
        raise ValidationError("k must be an integer", field="k", value=k, error_code="VALIDATION_ERROR")
    return max(MIN_K, min(k, MAX_K))


def extract_snippet(text: str, query: str, window: int = SNIPPET_WINDOW, step: int = SNIPPET_STEP) -> str:
    """Best ``window``-sized slice of ``text`` for ``query``.

    Windows start every ``step`` characters and are scored by how many
    distinct query terms they contain; the first best window wins.
    """
    terms = set(query.lower().split())
    lower = text.lower()

    best_start = 0
    best_score = 0
    for start in range(0, len(text) - window, step):
        chunk = lower[start:start + window]
        score = sum(1 for term in terms if term in chunk)
        if score > best_score:
            best_score = score
            best_start = start

    end = min(len(text), best_start + window)
    snippet = text[best_start:end].strip()
    if best_start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


class SemanticSearchEngine:

    def __init__(self, store: RecordStore, embedder: EmbeddingClient):
        self.store = store
        self.embedder = embedder

    async def search(self, query: str, k=5) -> List[SearchHit]:
        if not query or not query.strip():
            raise ValidationError("Query is required", field="query", error_code="FIELD_REQUIRED")
        k = clamp_k(k)

        query_embedding = await self.embedder.aembed(query)
        ranked = await self.store.similarity_topk(query_embedding, k)
        logger.debug(f"Semantic search returned {len(ranked)} hits for k={k}")

        return [
            SearchHit(
                id=record.id,
                candidate_name=record.profile.name,
                relevance_score=round(similarity, 2),
                snippet=extract_snippet(record.raw_text, query),
                metadata={"filename": record.filename},
            )
            for record, similarity in ranked
        ]
