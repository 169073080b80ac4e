from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
import uuid


def new_record_id() -> str:
    return str(uuid.uuid4())


class Profile(BaseModel):
    name: str = "Unknown"
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)
    summary: str = ""
    experience_years: int = Field(default=0, ge=0)


class ResumeRecord(BaseModel):
    id: str = Field(default_factory=new_record_id)
    kind: Literal["resume"] = "resume"
    filename: str
    raw_text: str
    profile: Profile
    embedding: Optional[List[float]] = None
    owner: str
    processing_status: Literal["processing", "completed", "failed"] = "completed"
    created_at: datetime = Field(default_factory=datetime.utcnow)


class JobRecord(BaseModel):
    id: str = Field(default_factory=new_record_id)
    kind: Literal["job"] = "job"
    title: str
    description: str = ""
    required_skills: List[str] = Field(default_factory=list)
    experience_required: int = Field(default=0, ge=0)
    location: str = ""
    embedding: Optional[List[float]] = None
    owner: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def raw_text(self) -> str:
        return f"{self.title} {self.description} {' '.join(self.required_skills)}"


class MatchResult(BaseModel):
    candidate_id: str
    candidate_name: str
    score: float = Field(ge=0, le=100)
    matching_skills: List[str]
    missing_skills: List[str]
    evidence: str
    experience_satisfied: bool


class SearchHit(BaseModel):
    id: str
    candidate_name: str
    relevance_score: float
    snippet: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DocumentOutcome(BaseModel):
    filename: str
    status: Literal["completed", "failed"]
    id: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class Page(BaseModel):
    items: List[Any]
    next_offset: Optional[int] = None


class IdempotencyEntry(BaseModel):
    key: str
    endpoint: str
    request_fingerprint: str
    status_code: int
    response: Any
    expires_at: float


class RateWindow(BaseModel):
    actor_id: str
    window_bucket: int
    count: int = 0


class RateLimitStatus(BaseModel):
    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
