from typing import List, Tuple

from resumerag.models.models import JobRecord, MatchResult, Profile, ResumeRecord
from resumerag.services.embeddings import cosine_similarity
from resumerag.services.record_store import JOB, RESUME, RecordStore
from resumerag.utils.exceptions import ValidationError
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)

# Product policy weights for the composite score; they sum to 1.
SKILL_WEIGHT = 0.5
EXPERIENCE_WEIGHT = 0.3
SEMANTIC_WEIGHT = 0.2

MIN_TOP_N = 1
MAX_TOP_N = 50


def clamp_top_n(top_n) -> int:
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        raise ValidationError("top_n must be an integer", field="top_n", value=top_n, error_code="VALIDATION_ERROR")
    return max(MIN_TOP_N, min(top_n, MAX_TOP_N))


def skill_overlap(required: List[str], candidate: List[str]) -> Tuple[List[str], List[str]]:
    # a required skill counts when it is contained in any candidate skill,
    # so "Go" is satisfied by "Django"
    cand = [c.lower() for c in candidate]
    matching, missing = [], []
    for skill in required:
        needle = skill.lower()
        if any(needle in c for c in cand):
            matching.append(skill)
        else:
            missing.append(skill)
    return matching, missing


def skill_ratio(matching: List[str], required: List[str]) -> float:
    if not required:
        return 0.0
    return len(matching) / len(required)


def experience_ratio(candidate_years: int, required_years: int) -> float:
    if required_years > 0:
        return min(candidate_years / required_years, 1.0)
    return 1.0


def composite_score(skills: float, experience: float, semantic: float) -> float:
    total = (skills * SKILL_WEIGHT + experience * EXPERIENCE_WEIGHT + semantic * SEMANTIC_WEIGHT) * 100
    return max(0.0, min(100.0, round(total, 2)))


def build_evidence(profile: Profile, matching: List[str], candidate_years: int, required_years: int) -> str:
    parts = []
    if matching:
        parts.append(f"Has {len(matching)} matching skill(s): {', '.join(matching[:3])}")

    if candidate_years > 0:
        parts.append(f"{candidate_years} years of experience")
        if candidate_years >= required_years:
            parts.append(f"(meets {required_years} year requirement)")

    if profile.summary:
        parts.append(f"Profile: {profile.summary[:100]}...")

    return ". ".join(parts)


def score_candidate(job: JobRecord, resume: ResumeRecord) -> MatchResult:
    profile = resume.profile
    required = job.required_skills
    candidate_years = profile.experience_years
    required_years = job.experience_required

    matching, missing = skill_overlap(required, profile.skills)
    semantic = cosine_similarity(job.embedding, resume.embedding)
    score = composite_score(
        skill_ratio(matching, required),
        experience_ratio(candidate_years, required_years),
        semantic,
    )

    return MatchResult(
        candidate_id=resume.id,
        candidate_name=profile.name,
        score=score,
        matching_skills=matching,
        missing_skills=missing,
        evidence=build_evidence(profile, matching, candidate_years, required_years),
        experience_satisfied=candidate_years >= required_years,
    )


def rank_and_score(job: JobRecord, resumes: List[ResumeRecord], top_n: int) -> List[MatchResult]:
    """Score every resume, then rank by score.

    Equal scores keep the order the resumes were given in (stable sort).
    Truncation to ``top_n`` happens only after the full ranking.
    """
    scored = [score_candidate(job, r) for r in resumes if r.embedding is not None]
    ranked = sorted(scored, key=lambda m: m.score, reverse=True)
    return ranked[:top_n]


class MatchScorer:

    def __init__(self, store: RecordStore):
        self.store = store

    async def match(self, job_id: str, top_n=10) -> List[MatchResult]:
        top_n = clamp_top_n(top_n)
        job = await self.store.get(JOB, job_id)
        resumes = await self.store.scan_all(RESUME)
        logger.info(f"Matching job {job_id} against {len(resumes)} candidates")
        if job.embedding is None:
            logger.warning(f"Job {job_id} has no embedding; nothing to match")
            return []
        return rank_and_score(job, resumes, top_n)
