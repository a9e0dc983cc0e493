# Purpose: Candidate graph materialized from structured resume data.
# Notes:
# - `years_experience` is a cached value, recomputable from work_experience rows alone.
# - `skills` is a process-wide catalog; candidate_skills is the join carrying proficiency.

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import (
    Column, Text, String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from resume_processor.db.base import Base


class CandidateStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class SkillCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    FRAMEWORK = "FRAMEWORK"
    TOOL = "TOOL"
    LANGUAGE = "LANGUAGE"
    CERTIFICATION = "CERTIFICATION"
    SOFT_SKILL = "SOFT_SKILL"


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(300), nullable=False)
    email = Column(Text, nullable=True)
    phone = Column(String(64), nullable=True)
    location = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)
    github_url = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    years_experience = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default=CandidateStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    resumes = relationship("Resume", back_populates="candidate")
    work_experience = relationship(
        "WorkExperience", back_populates="candidate", cascade="all, delete-orphan", passive_deletes=True
    )
    education = relationship(
        "Education", back_populates="candidate", cascade="all, delete-orphan", passive_deletes=True
    )
    skills = relationship(
        "CandidateSkill", back_populates="candidate", cascade="all, delete-orphan", passive_deletes=True
    )
    certifications = relationship(
        "Certification", back_populates="candidate", cascade="all, delete-orphan", passive_deletes=True
    )


class WorkExperience(Base):
    __tablename__ = "work_experience"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid(as_uuid=True), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)

    company = Column(String(300), nullable=False)
    position = Column(String(300), nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)

    candidate = relationship("Candidate", back_populates="work_experience")


class Education(Base):
    __tablename__ = "education"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid(as_uuid=True), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)

    institution = Column(String(300), nullable=False)
    degree = Column(String(300), nullable=False)
    field = Column(String(300), nullable=True)
    start_year = Column(Integer, nullable=True)
    end_year = Column(Integer, nullable=True)
    gpa = Column(Float, nullable=True)

    candidate = relationship("Candidate", back_populates="education")


class Skill(Base):
    """Deduplicated skill catalog. `name` is the exact trimmed name (unique)."""
    __tablename__ = "skills"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, unique=True)
    category = Column(String(32), nullable=False, default=SkillCategory.SOFT_SKILL.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    candidates = relationship("CandidateSkill", back_populates="skill")


class CandidateSkill(Base):
    __tablename__ = "candidate_skills"
    __table_args__ = (UniqueConstraint("candidate_id", "skill_id", name="uq_candidate_skill"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid(as_uuid=True), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)
    skill_id = Column(Uuid(as_uuid=True), ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)

    proficiency = Column(Float, nullable=False)
    years_experience = Column(Float, nullable=True)

    candidate = relationship("Candidate", back_populates="skills")
    skill = relationship("Skill", back_populates="candidates")


class Certification(Base):
    __tablename__ = "certifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    candidate_id = Column(Uuid(as_uuid=True), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(300), nullable=False)
    issuer = Column(String(300), nullable=False)
    issue_date = Column(DateTime, nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    credential_id = Column(String(200), nullable=True)
    credential_url = Column(Text, nullable=True)

    candidate = relationship("Candidate", back_populates="certifications")
