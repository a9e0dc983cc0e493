# path: backend/resume_processor/repositories/resume_repo.py
# Purpose: Data-access for processing records and their step log. Every write commits.
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional, Tuple
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from resume_processor.models.resume import (
    Resume, ProcessingLog, ResumeStatus, ProcessingStage, ProcessingStep, LogStatus,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_resume(
    db: Session,
    *,
    processing_id: str,
    original_file_name: str,
    file_path: str,
    file_type: str,
    file_size: Optional[int],
    mime_type: Optional[str],
    uploaded_by: Optional[str],
    metadata: Optional[dict[str, Any]] = None,
) -> Resume:
    r = Resume(
        processing_id=processing_id,
        original_file_name=original_file_name,
        file_path=file_path,
        file_type=file_type,
        file_size=file_size,
        mime_type=mime_type,
        uploaded_by=uploaded_by,
        status=ResumeStatus.PROCESSING.value,
        processing_stage=ProcessingStage.TEXT_EXTRACTION.value,
        metadata_json=dict(metadata or {}),
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


def get_resume(db: Session, resume_id: UUID) -> Optional[Resume]:
    return db.get(Resume, resume_id)


def get_by_processing_id(db: Session, processing_id: str) -> Optional[Resume]:
    stmt = select(Resume).where(Resume.processing_id == processing_id)
    return db.execute(stmt).scalar_one_or_none()


def list_resumes(
    db: Session, *, offset: int = 0, limit: int = 20, status: Optional[str] = None
) -> Tuple[list[Resume], int]:
    base = select(Resume)
    count = select(func.count()).select_from(Resume)
    if status:
        base = base.where(Resume.status == status)
        count = count.where(Resume.status == status)
    total = db.execute(count).scalar_one()
    rows = db.execute(
        base.order_by(Resume.uploaded_at.desc()).offset(offset).limit(limit)
    ).scalars().all()
    return list(rows), total


def set_status(
    db: Session,
    resume: Resume,
    *,
    status: ResumeStatus,
    stage: ProcessingStage,
    **fields: Any,
) -> Resume:
    resume.status = status.value
    resume.processing_stage = stage.value
    for k, v in fields.items():
        setattr(resume, k, v)
    db.add(resume)
    db.commit()
    db.refresh(resume)
    return resume


def merge_metadata(db: Session, resume: Resume, **sections: Any) -> Resume:
    """Reassign (never mutate) the JSON bag so the change is always tracked."""
    resume.metadata_json = {**(resume.metadata_json or {}), **sections}
    db.add(resume)
    db.commit()
    db.refresh(resume)
    return resume


def add_log(
    db: Session,
    resume: Resume,
    *,
    step: ProcessingStep,
    status: LogStatus,
    message: Optional[str] = None,
    error_details: Optional[str] = None,
    started_at: Optional[datetime] = None,
    completed: bool = False,
) -> ProcessingLog:
    now = _now()
    entry = ProcessingLog(
        resume_id=resume.id,
        step=step.value,
        status=status.value,
        message=message,
        error_details=error_details,
        started_at=started_at or now,
        completed_at=now if completed else None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_recent_logs(db: Session, resume_id: UUID, *, limit: int = 10) -> list[ProcessingLog]:
    """Newest first; a step's closing entry sorts before its STARTED entry."""
    stmt = (
        select(ProcessingLog)
        .where(ProcessingLog.resume_id == resume_id)
        .order_by(ProcessingLog.started_at.desc(), ProcessingLog.completed_at.desc().nulls_last())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def delete_resume(db: Session, resume: Resume) -> None:
    # Delete loaded log rows explicitly; SQLite does not enforce ON DELETE CASCADE
    for entry in list(resume.processing_logs):
        db.delete(entry)
    db.delete(resume)
    db.commit()
