from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from resumerag.models.models import DocumentOutcome, MatchResult, SearchHit

# -------- Resumes --------
class UploadedFile(BaseModel):
    filename: str
    content: str  # base64, no data-URL prefix

class ResumeUploadRequest(BaseModel):
    files: List[UploadedFile] = Field(..., min_length=1)

class ResumeUploadResponse(BaseModel):
    resumes: List[DocumentOutcome]

class ResumeSummary(BaseModel):
    id: str
    filename: str
    candidate_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = []
    experience_years: int = 0
    uploaded_at: datetime

class ResumeListResponse(BaseModel):
    items: List[ResumeSummary]
    next_offset: Optional[int] = None

class ResumeDetail(BaseModel):
    id: str
    filename: str
    raw_text: str
    parsed_data: Dict[str, Any]
    uploaded_at: datetime

# -------- Search --------
class AskRequest(BaseModel):
    query: Optional[str] = None
    k: int = 5

class AskResponse(BaseModel):
    query: str
    answers: List[SearchHit]

# -------- Jobs --------
class JobCreateRequest(BaseModel):
    title: Optional[str] = None
    description: str = ""
    required_skills: List[str] = []
    experience_required: int = Field(default=0, ge=0)
    location: str = ""

class JobCreateResponse(BaseModel):
    id: str
    title: str
    created_at: datetime

class JobDetail(BaseModel):
    id: str
    title: str
    description: str
    required_skills: List[str]
    experience_required: int
    location: str
    created_at: datetime

class JobListResponse(BaseModel):
    items: List[JobDetail]
    next_offset: Optional[int] = None

class MatchRequest(BaseModel):
    top_n: int = 10

class MatchResponse(BaseModel):
    job_id: str
    matches: List[MatchResult]
    ranked_by: str = "deterministic_score"

# -------- Meta --------
class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    embedding_service: str
