from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from typing import List, Optional

from resumerag import config
from resumerag.dependencies import (
    Actor,
    get_guard,
    get_ingestion_service,
    get_store,
    rate_limited_actor,
)
from resumerag.models.models import DocumentOutcome
from resumerag.models.schemas import (
    ResumeDetail,
    ResumeListResponse,
    ResumeSummary,
    ResumeUploadRequest,
    ResumeUploadResponse,
)
from resumerag.services.idempotency import IdempotencyGuard
from resumerag.services.ingestion import IngestionService
from resumerag.services.record_store import RESUME, RecordStore
from resumerag.utils.exceptions import ValidationError, describe_failure
from resumerag.utils.logging_config import get_logger
from resumerag.utils.utils import decode_base64, idempotent_response

router = APIRouter()
logger = get_logger(__name__)

REDACTED = "***REDACTED***"


@router.post("", status_code=201, response_model=ResumeUploadResponse)
async def upload_resumes(
    payload: ResumeUploadRequest,
    request: Request,
    idempotency_key: Optional[str] = Header(None),
    actor: Actor = Depends(rate_limited_actor),
    service: IngestionService = Depends(get_ingestion_service),
    guard: IdempotencyGuard = Depends(get_guard),
):
    """Upload resumes (PDF, DOCX, TXT, or ZIP of those) as base64 content"""
    if len(payload.files) > config.MAX_FILES_PER_UPLOAD:
        raise ValidationError(
            f"At most {config.MAX_FILES_PER_UPLOAD} files per upload",
            field="files",
        )

    async def ingest():
        outcomes: List[DocumentOutcome] = []
        for f in payload.files:
            try:
                data = decode_base64(f.content)
                if len(data) > config.MAX_FILE_SIZE:
                    raise ValidationError(
                        f"File exceeds {config.MAX_FILE_SIZE} bytes",
                        field="content",
                        error_code="FILE_TOO_LARGE",
                    )
            except ValidationError as e:
                outcomes.append(DocumentOutcome(filename=f.filename, status="failed", error=describe_failure(e)))
                continue
            outcomes.extend(await service.ingest_file(f.filename, data, actor.id))

        logger.info(
            f"Upload by {actor.id}: {sum(o.status == 'completed' for o in outcomes)}/{len(outcomes)} documents stored"
        )
        return 201, jsonable_encoder(ResumeUploadResponse(resumes=outcomes))

    return await idempotent_response(request, idempotency_key, payload.model_dump(), guard, ingest)


@router.get("", response_model=ResumeListResponse)
async def list_resumes(
    limit: int = Query(config.DEFAULT_PAGINATION_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    q: Optional[str] = Query(None, description="Case-insensitive substring filter on resume text"),
    actor: Actor = Depends(rate_limited_actor),
    store: RecordStore = Depends(get_store),
):
    """List resumes, newest first"""
    limit = min(limit, config.MAX_PAGINATION_LIMIT)
    page = await store.list(RESUME, limit=limit, offset=offset, q=q)

    items = [
        ResumeSummary(
            id=r.id,
            filename=r.filename,
            candidate_name=r.profile.name,
            email=r.profile.email if actor.sees_pii else None,
            phone=r.profile.phone if actor.sees_pii else None,
            skills=r.profile.skills,
            experience_years=r.profile.experience_years,
            uploaded_at=r.created_at,
        )
        for r in page.items
    ]
    return ResumeListResponse(items=items, next_offset=page.next_offset)


@router.get("/{resume_id}", response_model=ResumeDetail)
async def get_resume(
    resume_id: str,
    actor: Actor = Depends(rate_limited_actor),
    store: RecordStore = Depends(get_store),
):
    """Get one resume with its parsed profile"""
    resume = await store.get(RESUME, resume_id)
    parsed = resume.profile.model_dump()

    if not actor.sees_pii:
        parsed["email"] = REDACTED
        parsed["phone"] = REDACTED

    return ResumeDetail(
        id=resume.id,
        filename=resume.filename,
        raw_text=resume.raw_text,
        parsed_data=parsed,
        uploaded_at=resume.created_at,
    )
