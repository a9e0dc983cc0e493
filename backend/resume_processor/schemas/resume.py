# resume_processor/schemas/resume.py
# -----------------------------------------------------------------------------
# API output models for processing records. Built from the plain dicts returned
# by services/resumes/ingestion_pipeline.py.
# -----------------------------------------------------------------------------
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ProcessingLogItem(BaseModel):
    step: str
    status: str
    message: Optional[str] = None
    error_details: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class ResumeSummary(BaseModel):
    id: UUID
    processing_id: str
    original_file_name: str
    file_type: str
    status: str
    processing_stage: str
    candidate_id: Optional[UUID] = None
    uploaded_at: Optional[datetime] = None


class ResumeListOut(BaseModel):
    items: list[ResumeSummary]
    total: int


class ResumeDetail(ResumeSummary):
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_by: Optional[str] = None
    extracted_text: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None
    logs: list[ProcessingLogItem] = Field(default_factory=list)


class ProcessingStatusOut(ResumeSummary):
    """Polling view: newest log entries first."""
    updated_at: Optional[datetime] = None
    quality_assessment: Optional[dict[str, Any]] = None
    used_fallback: Optional[bool] = None
    error: Optional[str] = None
    logs: list[ProcessingLogItem] = Field(default_factory=list)


class UploadResponse(BaseModel):
    resume: ProcessingStatusOut
    candidate_id: Optional[UUID] = None
    used_fallback: bool = False
    extraction_method: Optional[str] = None
    quality: Optional[dict[str, Any]] = None
