"""Resume API endpoints: upload-and-process, status polling, listing, detail and cleanup."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from resume_processor.api.deps import get_resume_processor
from resume_processor.core.config import settings
from resume_processor.db.base import get_db
from resume_processor.models.resume import ResumeStatus
from resume_processor.schemas.resume import (
    ProcessingStatusOut, ResumeDetail, ResumeListOut, ResumeSummary, UploadResponse,
)
from resume_processor.services.resumes import ingestion_pipeline as resume_service
from resume_processor.services.resumes.ingestion_pipeline import ResumeProcessor, UploadedFile
from resume_processor.services.resumes.storage import remove_file, save_upload

router = APIRouter(prefix="/resumes", tags=["resumes"])
logger = logging.getLogger("api.resumes")


@router.post("/upload", response_model=UploadResponse)
def upload_resume(
    file: UploadFile = File(...),
    uploaded_by: Optional[str] = Form(None),
    processor: ResumeProcessor = Depends(get_resume_processor),
):
    """
    Store the upload in TEMP_DIR and run it through the whole pipeline.
    - 400: file type not allowed, empty or oversized file
    - 422: text extraction failed (body carries the status and log trail)
    """
    original_name = Path(file.filename or "").name
    file_type = Path(original_name).suffix.lower().lstrip(".")
    if not original_name or file_type not in settings.allowed_file_types:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{file_type}'. Allowed: {sorted(settings.allowed_file_types)}",
        )

    temp_path = save_upload(file.file, original_name, settings.TEMP_DIR)
    size = temp_path.stat().st_size
    if size == 0 or size > settings.MAX_FILE_SIZE:
        remove_file(temp_path)
        raise HTTPException(status_code=400, detail=f"File size must be between 1 and {settings.MAX_FILE_SIZE} bytes")

    upload = UploadedFile(
        path=temp_path,
        original_name=original_name,
        file_type=file_type,
        file_size=size,
        mime_type=file.content_type,
    )
    result = processor.process_file(upload, uploaded_by=uploaded_by)
    status = resume_service.get_processing_status(processor.db, result.resume.id)

    if result.resume.status == ResumeStatus.FAILED.value:
        logger.warning("Upload %s failed during text extraction", original_name)
        return JSONResponse(status_code=422, content=ProcessingStatusOut(**status).model_dump(mode="json"))

    return UploadResponse(
        resume=ProcessingStatusOut(**status),
        candidate_id=result.candidate.id if result.candidate else None,
        used_fallback=result.used_fallback,
        extraction_method=result.extracted.extraction_method if result.extracted else None,
        quality=result.quality.to_dict() if result.quality else None,
    )


@router.get("", response_model=ResumeListOut)
def list_resumes(
    db: Session = Depends(get_db),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=500),
    status: Optional[str] = Query(None),
):
    summaries, total = resume_service.list_resume_summaries(db, offset=offset, limit=limit, status=status)
    return ResumeListOut(items=[ResumeSummary(**s) for s in summaries], total=total)


@router.get("/{resume_id}", response_model=ResumeDetail)
def get_resume(resume_id: UUID, db: Session = Depends(get_db)):
    detail = resume_service.get_resume_detail(db, resume_id)
    if not detail:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ResumeDetail(**detail)


@router.get("/{resume_id}/status", response_model=ProcessingStatusOut)
def get_status(resume_id: UUID, db: Session = Depends(get_db)):
    status = resume_service.get_processing_status(db, resume_id)
    if not status:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ProcessingStatusOut(**status)


@router.delete("/{resume_id}", status_code=204)
def delete_resume(resume_id: UUID, db: Session = Depends(get_db)):
    if not resume_service.cleanup_processing(db, resume_id):
        raise HTTPException(status_code=404, detail="Resume not found")
    return None
