from fastapi import APIRouter, Depends

from resumerag.dependencies import Actor, get_search_engine, rate_limited_actor
from resumerag.models.schemas import AskRequest, AskResponse
from resumerag.services.search import SemanticSearchEngine

router = APIRouter()


@router.post("", response_model=AskResponse)
async def ask(
    payload: AskRequest,
    actor: Actor = Depends(rate_limited_actor),
    engine: SemanticSearchEngine = Depends(get_search_engine),
):
    """Semantic search over resumes"""
    answers = await engine.search(payload.query, payload.k)
    return AskResponse(query=payload.query, answers=answers)
