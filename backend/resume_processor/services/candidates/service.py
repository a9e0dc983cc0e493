from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from resume_processor.models.candidate import Candidate
from resume_processor.repositories import candidate_repo

logger = logging.getLogger("candidates.service")


def _skill_names(candidate: Candidate) -> list[str]:
    return [cs.skill.name for cs in candidate.skills if cs.skill is not None]


def _candidate_to_summary(candidate: Candidate) -> dict[str, Any]:
    return {
        "id": candidate.id,
        "full_name": candidate.full_name,
        "email": candidate.email,
        "phone": candidate.phone,
        "location": candidate.location,
        "years_experience": candidate.years_experience or 0,
        "status": candidate.status,
        "skills": _skill_names(candidate),
        "created_at": candidate.created_at,
    }


def get_candidate_detail(db: Session, candidate_id: UUID) -> Optional[dict[str, Any]]:
    candidate = candidate_repo.get_candidate(db, candidate_id)
    if not candidate:
        return None
    return {
        "id": candidate.id,
        "full_name": candidate.full_name,
        "email": candidate.email,
        "phone": candidate.phone,
        "location": candidate.location,
        "linkedin_url": candidate.linkedin_url,
        "github_url": candidate.github_url,
        "summary": candidate.summary,
        "years_experience": candidate.years_experience or 0,
        "status": candidate.status,
        "resume_ids": [r.id for r in candidate.resumes],
        "work_experience": list(candidate.work_experience),
        "education": list(candidate.education),
        "skills": [
            {
                "name": cs.skill.name,
                "category": cs.skill.category,
                "proficiency": cs.proficiency,
                "years_experience": cs.years_experience,
            }
            for cs in candidate.skills
            if cs.skill is not None
        ],
        "certifications": list(candidate.certifications),
        "created_at": candidate.created_at,
        "updated_at": candidate.updated_at,
    }


def search_candidate_summaries(
    db: Session,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    skills: Optional[Iterable[str]] = None,
    min_experience: Optional[int] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[list[dict[str, Any]], int]:
    rows, total = candidate_repo.search_candidates(
        db, name=name, email=email, skills=skills, min_experience=min_experience, offset=offset, limit=limit
    )
    logger.debug("Candidate search matched %d rows", total)
    return [_candidate_to_summary(c) for c in rows], total
