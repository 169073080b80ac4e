from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from resumerag import config
from resumerag.dependencies import get_embedder, get_store
from resumerag.models.schemas import HealthResponse
from resumerag.services.embeddings import EmbeddingClient, embedding_status
from resumerag.services.record_store import RecordStore
from resumerag.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
@router.head("/health")
async def health_check(
    store: RecordStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
):
    """Health check endpoint - handles both GET and HEAD requests"""
    try:
        await store.ping()
    except Exception as e:
        logger.error(f"Health check: record store unreachable: {e}")
        body = HealthResponse(
            status="error",
            timestamp=datetime.utcnow(),
            database="disconnected",
            embedding_service="unknown",
        )
        return JSONResponse(status_code=503, content=jsonable_encoder(body))

    return HealthResponse(
        status="ok",
        timestamp=datetime.utcnow(),
        database="connected",
        embedding_service=embedding_status(embedder),
    )


@router.get("/_meta")
async def meta():
    return {
        "version": config.API_VERSION,
        "endpoints": [
            "/api/resumes",
            "/api/resumes/{id}",
            "/api/ask",
            "/api/jobs",
            "/api/jobs/{id}",
            "/api/jobs/{id}/match",
        ],
        "features": ["pagination", "idempotency", "rate_limiting", "pii_redaction"],
        "limits": {
            "rate_limit": f"{config.RATE_LIMIT_PER_WINDOW} req/{config.RATE_LIMIT_WINDOW_SECONDS}s/actor",
            "max_file_size": config.MAX_FILE_SIZE,
            "max_files_per_upload": config.MAX_FILES_PER_UPLOAD,
            "max_pagination_limit": config.MAX_PAGINATION_LIMIT,
            "search_k_max": 20,
            "match_top_n_max": 50,
        },
    }
