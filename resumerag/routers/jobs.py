from fastapi import APIRouter, Body, Depends, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from typing import Optional

from resumerag import config
from resumerag.dependencies import (
    Actor,
    get_guard,
    get_ingestion_service,
    get_match_scorer,
    get_store,
    rate_limited_actor,
)
from resumerag.models.models import JobRecord
from resumerag.models.schemas import (
    JobCreateRequest,
    JobCreateResponse,
    JobDetail,
    JobListResponse,
    MatchRequest,
    MatchResponse,
)
from resumerag.services.idempotency import IdempotencyGuard
from resumerag.services.ingestion import IngestionService
from resumerag.services.matching import MatchScorer
from resumerag.services.record_store import JOB, RecordStore
from resumerag.utils.utils import idempotent_response

router = APIRouter()


def _job_detail(job: JobRecord) -> JobDetail:
    return JobDetail(
        id=job.id,
        title=job.title,
        description=job.description,
        required_skills=job.required_skills,
        experience_required=job.experience_required,
        location=job.location,
        created_at=job.created_at,
    )


@router.post("", status_code=201, response_model=JobCreateResponse)
async def create_job(
    payload: JobCreateRequest,
    request: Request,
    idempotency_key: Optional[str] = Header(None),
    actor: Actor = Depends(rate_limited_actor),
    service: IngestionService = Depends(get_ingestion_service),
    guard: IdempotencyGuard = Depends(get_guard),
):
    """Create a job and embed its description"""

    async def create():
        job = await service.create_job(
            owner=actor.id,
            title=payload.title,
            description=payload.description,
            required_skills=payload.required_skills,
            experience_required=payload.experience_required,
            location=payload.location,
        )
        return 201, jsonable_encoder(JobCreateResponse(id=job.id, title=job.title, created_at=job.created_at))

    return await idempotent_response(request, idempotency_key, payload.model_dump(), guard, create)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(config.DEFAULT_PAGINATION_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(rate_limited_actor),
    store: RecordStore = Depends(get_store),
):
    """List jobs, newest first"""
    limit = min(limit, config.MAX_PAGINATION_LIMIT)
    page = await store.list(JOB, limit=limit, offset=offset)
    return JobListResponse(items=[_job_detail(j) for j in page.items], next_offset=page.next_offset)


@router.get("/{job_id}", response_model=JobDetail)
async def get_job(
    job_id: str,
    actor: Actor = Depends(rate_limited_actor),
    store: RecordStore = Depends(get_store),
):
    """Get job details"""
    return _job_detail(await store.get(JOB, job_id))


@router.post("/{job_id}/match", response_model=MatchResponse)
async def match_job(
    job_id: str,
    payload: Optional[MatchRequest] = Body(None),
    actor: Actor = Depends(rate_limited_actor),
    scorer: MatchScorer = Depends(get_match_scorer),
):
    """Rank stored candidates against a job with the deterministic score"""
    top_n = payload.top_n if payload else 10
    matches = await scorer.match(job_id, top_n)
    return MatchResponse(job_id=job_id, matches=matches)
