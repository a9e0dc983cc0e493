"""Candidate API endpoints: search and full detail."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from resume_processor.db.base import get_db
from resume_processor.schemas.candidate import CandidateDetail, CandidateListOut, CandidateSummary
from resume_processor.services.candidates import service as candidate_service

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("", response_model=CandidateListOut)
def search_candidates(
    db: Session = Depends(get_db),
    name: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    skills: Optional[list[str]] = Query(None, description="Repeat or comma-separate; matched case-insensitively"),
    min_experience: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=500),
):
    skill_names = [s.strip() for raw in (skills or []) for s in raw.split(",") if s.strip()]
    items, total = candidate_service.search_candidate_summaries(
        db, name=name, email=email, skills=skill_names, min_experience=min_experience, offset=offset, limit=limit
    )
    return CandidateListOut(items=[CandidateSummary(**c) for c in items], total=total)


@router.get("/{candidate_id}", response_model=CandidateDetail)
def get_candidate(candidate_id: UUID, db: Session = Depends(get_db)):
    detail = candidate_service.get_candidate_detail(db, candidate_id)
    if not detail:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return CandidateDetail.model_validate(detail, from_attributes=True)
