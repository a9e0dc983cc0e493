# resume_processor/services/candidates/materializer.py
"""
Write StructuredResumeData into the candidate graph as one unit of work.

Either the candidate with all of its experience, education, skills and
certifications is committed, or the session is rolled back and the error
re-raised; no partial graph is ever left behind.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from resume_processor.models.candidate import Candidate, CandidateStatus
from resume_processor.models.resume import Resume
from resume_processor.repositories import candidate_repo
from resume_processor.schemas.structured_resume import CertificationDetail, StructuredResumeData
from resume_processor.services.candidates.experience import calculate_years_of_experience, parse_date
from resume_processor.services.candidates.skills import categorize_skill

logger = logging.getLogger("candidates.materializer")

# Placeholder signal until proficiency is scored from resume content
DEFAULT_SKILL_PROFICIENCY = 0.8

UNKNOWN_NAME = "Unknown"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_POSITION = "Unknown Position"
UNKNOWN_INSTITUTION = "Unknown Institution"
UNKNOWN_DEGREE = "Unknown Degree"
UNKNOWN_CERT_ISSUER = "Unknown"
UNKNOWN_CERTIFICATION = "Unknown Certification"
UNKNOWN_ISSUER = "Unknown Issuer"


def materialize_candidate(
    db: Session,
    data: StructuredResumeData,
    *,
    resume: Optional[Resume] = None,
    now: Optional[datetime] = None,
) -> Candidate:
    """Create the candidate graph (and link `resume` to it) in a single commit."""
    info = data.personal_info
    try:
        candidate = candidate_repo.create_candidate(
            db,
            full_name=info.name or UNKNOWN_NAME,
            email=info.email,
            phone=info.phone,
            location=info.address,
            linkedin_url=info.linkedin,
            github_url=info.github,
            summary=data.summary,
            years_experience=calculate_years_of_experience(data.experience, now=now),
            status=CandidateStatus.ACTIVE.value,
        )

        for exp in data.experience:
            candidate_repo.add_work_experience(
                db,
                candidate,
                company=exp.company or UNKNOWN_COMPANY,
                position=exp.position or UNKNOWN_POSITION,
                start_date=parse_date(exp.start_date),
                end_date=parse_date(exp.end_date),
                is_current=exp.is_current,
                description=exp.description,
            )

        for edu in data.education:
            candidate_repo.add_education(
                db,
                candidate,
                institution=edu.institution or UNKNOWN_INSTITUTION,
                degree=edu.degree or UNKNOWN_DEGREE,
                field=edu.field,
                start_year=edu.start_year,
                end_year=edu.end_year,
                gpa=edu.gpa,
            )

        linked: set[str] = set()
        for raw_name in data.skills:
            name = raw_name.strip()
            if not name or name in linked:
                continue
            skill = candidate_repo.upsert_skill(db, name, categorize_skill(name))
            candidate_repo.link_skill(db, candidate, skill, proficiency=DEFAULT_SKILL_PROFICIENCY)
            linked.add(name)

        for cert in data.certifications:
            if isinstance(cert, CertificationDetail):
                candidate_repo.add_certification(
                    db,
                    candidate,
                    name=cert.name or UNKNOWN_CERTIFICATION,
                    issuer=cert.issuer or UNKNOWN_ISSUER,
                    issue_date=parse_date(cert.issue_date),
                    expiry_date=parse_date(cert.expiry_date),
                    credential_id=cert.credential_id,
                    credential_url=cert.credential_url,
                )
            else:
                candidate_repo.add_certification(db, candidate, name=cert, issuer=UNKNOWN_CERT_ISSUER)

        if resume is not None:
            resume.candidate_id = candidate.id
            db.add(resume)

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Candidate materialization rolled back")
        raise

    db.refresh(candidate)
    logger.info(
        "Candidate %s created: %s | %d experience, %d education, %d skills, %d certifications, %d years",
        candidate.id, candidate.full_name, len(data.experience), len(data.education),
        len(linked), len(data.certifications), candidate.years_experience,
    )
    return candidate
