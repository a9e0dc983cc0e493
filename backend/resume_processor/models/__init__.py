# backend/resume_processor/models/__init__.py
from resume_processor.models.resume import Resume, ProcessingLog
from resume_processor.models.candidate import (
    Candidate,
    WorkExperience,
    Education,
    Skill,
    CandidateSkill,
    Certification,
)

__all__ = [
    "Resume",
    "ProcessingLog",
    "Candidate",
    "WorkExperience",
    "Education",
    "Skill",
    "CandidateSkill",
    "Certification",
]
