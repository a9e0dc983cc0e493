# path: backend/resume_processor/repositories/candidate_repo.py
# Purpose: Data-access for the candidate graph and the shared skill catalog.
# Writes only flush: the caller owns the transaction (see services/candidates/materializer.py).
from __future__ import annotations
import logging
from typing import Any, Iterable, Optional, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from resume_processor.models.candidate import (
    Candidate, WorkExperience, Education, Skill, CandidateSkill, Certification, SkillCategory,
)

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def create_candidate(db: Session, **fields: Any) -> Candidate:
    c = Candidate(**fields)
    db.add(c)
    db.flush()
    return c


def add_work_experience(db: Session, candidate: Candidate, **fields: Any) -> WorkExperience:
    row = WorkExperience(candidate_id=candidate.id, **fields)
    db.add(row)
    db.flush()
    return row


def add_education(db: Session, candidate: Candidate, **fields: Any) -> Education:
    row = Education(candidate_id=candidate.id, **fields)
    db.add(row)
    db.flush()
    return row


def add_certification(db: Session, candidate: Candidate, **fields: Any) -> Certification:
    row = Certification(candidate_id=candidate.id, **fields)
    db.add(row)
    db.flush()
    return row


def get_skill(db: Session, name: str) -> Optional[Skill]:
    return db.execute(select(Skill).where(Skill.name == name)).scalar_one_or_none()


def find_skill_by_name(db: Session, name: str) -> Optional[Skill]:
    """Case-insensitive catalog lookup; the oldest row wins if casings differ."""
    stmt = (
        select(Skill)
        .where(func.lower(Skill.name) == (name or "").strip().lower())
        .order_by(Skill.created_at)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def upsert_skill(db: Session, name: str, category: SkillCategory) -> Skill:
    """
    Create-if-absent keyed by the exact name. Concurrent callers racing on the
    same name both end up with the single stored row.
    """
    dialect = db.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is not None:
        stmt = (
            insert(Skill)
            .values(name=name, category=category.value)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        db.execute(stmt)
        return db.execute(select(Skill).where(Skill.name == name)).scalar_one()

    existing = get_skill(db, name)
    if existing:
        return existing
    try:
        with db.begin_nested():
            skill = Skill(name=name, category=category.value)
            db.add(skill)
        return skill
    except IntegrityError:
        logger.info("Skill %r created concurrently; re-reading", name)
        return db.execute(select(Skill).where(Skill.name == name)).scalar_one()


def link_skill(
    db: Session, candidate: Candidate, skill: Skill, *, proficiency: float, years_experience: Optional[float] = None
) -> CandidateSkill:
    row = CandidateSkill(
        candidate_id=candidate.id, skill_id=skill.id, proficiency=proficiency, years_experience=years_experience
    )
    db.add(row)
    db.flush()
    return row


def get_candidate(db: Session, candidate_id: UUID) -> Optional[Candidate]:
    stmt = (
        select(Candidate)
        .where(Candidate.id == candidate_id)
        .options(
            selectinload(Candidate.work_experience),
            selectinload(Candidate.education),
            selectinload(Candidate.skills).selectinload(CandidateSkill.skill),
            selectinload(Candidate.certifications),
            selectinload(Candidate.resumes),
        )
    )
    return db.execute(stmt).scalar_one_or_none()


def search_candidates(
    db: Session,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    skills: Optional[Iterable[str]] = None,
    min_experience: Optional[int] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[list[Candidate], int]:
    filters = []
    if name:
        filters.append(Candidate.full_name.ilike(f"%{name}%"))
    if email:
        filters.append(Candidate.email.ilike(f"%{email}%"))
    wanted = [s.strip().lower() for s in (skills or []) if s and s.strip()]
    if wanted:
        filters.append(
            Candidate.skills.any(CandidateSkill.skill.has(func.lower(Skill.name).in_(wanted)))
        )
    if min_experience is not None:
        filters.append(Candidate.years_experience >= min_experience)

    total = db.execute(select(func.count()).select_from(Candidate).where(*filters)).scalar_one()
    stmt = (
        select(Candidate)
        .where(*filters)
        .options(
            selectinload(Candidate.skills).selectinload(CandidateSkill.skill),
            selectinload(Candidate.work_experience),
            selectinload(Candidate.education),
        )
        .order_by(Candidate.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), total
