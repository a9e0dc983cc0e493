# resume_processor/schemas/candidate.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _FromORM(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class WorkExperienceOut(_FromORM):
    id: UUID
    company: str
    position: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_current: bool = False
    description: Optional[str] = None


class EducationOut(_FromORM):
    id: UUID
    institution: str
    degree: str
    field: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    gpa: Optional[float] = None


class CandidateSkillOut(BaseModel):
    name: str
    category: str
    proficiency: float
    years_experience: Optional[float] = None


class CertificationOut(_FromORM):
    id: UUID
    name: str
    issuer: str
    issue_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None


class CandidateSummary(BaseModel):
    id: UUID
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    years_experience: int = Field(0, ge=0)
    status: str
    skills: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class CandidateListOut(BaseModel):
    items: list[CandidateSummary]
    total: int


class CandidateDetail(BaseModel):
    id: UUID
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    summary: Optional[str] = None
    years_experience: int = Field(0, ge=0)
    status: str
    resume_ids: list[UUID] = Field(default_factory=list)
    work_experience: list[WorkExperienceOut] = Field(default_factory=list)
    education: list[EducationOut] = Field(default_factory=list)
    skills: list[CandidateSkillOut] = Field(default_factory=list)
    certifications: list[CertificationOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
