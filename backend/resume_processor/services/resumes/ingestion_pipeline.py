"""End-to-end resume ingestion: text extraction, quality scoring, structured extraction and candidate creation,
plus the status/listing helpers the API reads."""
# -----------------------------------------------------------------------------
# STATE MACHINE
#   PROCESSING/TEXT_EXTRACTION
#     -> FAILED/TEXT_EXTRACTION_FAILED            (only fatal stage; temp file removed)
#     -> TEXT_EXTRACTED/READY_FOR_ANALYSIS
#     -> TEXT_EXTRACTED/STRUCTURED_EXTRACTION     (model or fallback, never fatal)
#     -> TEXT_EXTRACTED/CANDIDATE_CREATION
#     -> COMPLETED/DONE | ANALYZED/CANDIDATE_CREATION_FAILED
# Every step writes a STARTED log entry and a closing COMPLETED/FAILED entry
# sharing its started_at.
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from resume_processor.core.config import settings
from resume_processor.models.candidate import Candidate
from resume_processor.models.resume import (
    Resume, ProcessingLog, ResumeStatus, ProcessingStage, ProcessingStep, LogStatus,
)
from resume_processor.repositories import resume_repo
from resume_processor.services.candidates.materializer import materialize_candidate
from resume_processor.services.resumes.extraction_pipeline import ExtractionResult, ResumeExtractor, fallback_extraction
from resume_processor.services.resumes.ocr import OcrRunner
from resume_processor.services.resumes.parsing_utils import (
    ExtractedText,
    detect_mime,
    extract_text,
    get_file_metadata,
)
from resume_processor.services.resumes.storage import relocate_to_processed, remove_file
from resume_processor.services.resumes.text_quality import QualityAssessment, assess_text_quality

logger = logging.getLogger("resumes.pipeline")

RECENT_LOG_LIMIT = 10
_BASE36 = string.digits + string.ascii_lowercase


def generate_processing_id() -> str:
    """proc_<epoch-ms>_<9 random base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"proc_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class UploadedFile:
    path: Path
    original_name: str
    file_type: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path, *, original_name: Optional[str] = None) -> "UploadedFile":
        path = Path(path)
        name = original_name or path.name
        return cls(
            path=path,
            original_name=name,
            file_type=Path(name).suffix.lower().lstrip("."),
            file_size=path.stat().st_size if path.exists() else None,
            mime_type=detect_mime(Path(name)),
        )


@dataclass
class ProcessingResult:
    resume: Resume
    candidate: Optional[Candidate] = None
    extracted: Optional[ExtractedText] = None
    quality: Optional[QualityAssessment] = None
    extraction: Optional[ExtractionResult] = None
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return self.resume.status

    @property
    def used_fallback(self) -> bool:
        return bool(self.extraction and self.extraction.used_fallback)


class ResumeProcessor:
    """
    Runs one uploaded file through every stage, strictly in sequence.
    Collaborators are injected so tests can swap the model client and OCR worker.
    """

    def __init__(
        self,
        db: Session,
        *,
        extractor: Optional[ResumeExtractor] = None,
        ocr: Optional[OcrRunner] = None,
        processed_dir: Optional[Path] = None,
    ):
        self.db = db
        self.extractor = extractor or ResumeExtractor()
        self.ocr = ocr or OcrRunner()
        self.processed_dir = Path(processed_dir or settings.PROCESSED_DIR)

    def process_file(self, upload: UploadedFile, *, uploaded_by: Optional[str] = None) -> ProcessingResult:
        db = self.db
        resume = resume_repo.create_resume(
            db,
            processing_id=generate_processing_id(),
            original_file_name=upload.original_name,
            file_path=str(upload.path),
            file_type=upload.file_type,
            file_size=upload.file_size,
            mime_type=upload.mime_type,
            uploaded_by=uploaded_by,
            metadata={"file_metadata": get_file_metadata(upload.path)},
        )
        logger.info("Processing %s as %s (%s)", upload.original_name, resume.processing_id, upload.file_type)

        extracted = self._extract_text(resume, upload)
        if extracted is None:
            return ProcessingResult(resume=resume, error=(resume.metadata_json or {}).get("error"))

        quality = assess_text_quality(extracted.text)
        file_path = self._relocate(resume, upload.path)
        resume = resume_repo.set_status(
            db,
            resume,
            status=ResumeStatus.TEXT_EXTRACTED,
            stage=ProcessingStage.READY_FOR_ANALYSIS,
            extracted_text=extracted.text,
            file_path=str(file_path),
        )
        resume = resume_repo.merge_metadata(
            db, resume, text_extraction=extracted.to_metadata(), quality_assessment=quality.to_dict()
        )

        extraction = self._extract_structured(resume, extracted.text)
        candidate = self._create_candidate(resume, extraction)
        return ProcessingResult(
            resume=resume, candidate=candidate, extracted=extracted, quality=quality, extraction=extraction
        )

    # ---- stages ----

    def _extract_text(self, resume: Resume, upload: UploadedFile) -> Optional[ExtractedText]:
        db = self.db
        started = _now()
        resume_repo.add_log(db, resume, step=ProcessingStep.TEXT_EXTRACTION, status=LogStatus.STARTED,
                            message="Starting text extraction", started_at=started)
        try:
            extracted = extract_text(upload.path, upload.file_type, ocr=self.ocr)
        except Exception as e:
            logger.exception("Text extraction failed for %s: %s", resume.processing_id, e)
            resume_repo.add_log(db, resume, step=ProcessingStep.TEXT_EXTRACTION, status=LogStatus.FAILED,
                                message="Text extraction failed", error_details=str(e),
                                started_at=started, completed=True)
            resume_repo.merge_metadata(db, resume, error=str(e))
            resume_repo.set_status(db, resume, status=ResumeStatus.FAILED,
                                   stage=ProcessingStage.TEXT_EXTRACTION_FAILED)
            if remove_file(upload.path):
                logger.info("Removed temp file %s", upload.path)
            return None

        message = f"Extracted {len(extracted.text)} characters via {extracted.extraction_method}"
        if extracted.ocr_confidence is not None:
            message += f" (OCR confidence {extracted.ocr_confidence:.1f})"
        resume_repo.add_log(db, resume, step=ProcessingStep.TEXT_EXTRACTION, status=LogStatus.COMPLETED,
                            message=message, started_at=started, completed=True)
        return extracted

    def _relocate(self, resume: Resume, path: Path) -> Path:
        try:
            return relocate_to_processed(path, resume.processing_id, self.processed_dir)
        except OSError as e:
            logger.warning("Could not move %s to processed folder, keeping original path: %s", path, e)
            return path

    def _extract_structured(self, resume: Resume, text: str) -> ExtractionResult:
        db = self.db
        started = _now()
        resume_repo.set_status(db, resume, status=ResumeStatus.TEXT_EXTRACTED,
                               stage=ProcessingStage.STRUCTURED_EXTRACTION)
        resume_repo.add_log(db, resume, step=ProcessingStep.STRUCTURED_EXTRACTION, status=LogStatus.STARTED,
                            message="Starting structured extraction", started_at=started)

        try:
            extraction = self.extractor.extract_structured(text)
        except Exception as e:
            logger.exception("Structured extraction crashed for %s: %s", resume.processing_id, e)
            extraction = ExtractionResult(
                data=fallback_extraction(text), used_fallback=True, error=str(e), extracted_at=_now()
            )
        if settings.GENERATE_CANDIDATE_SUMMARY and not extraction.data.summary:
            summary = self.extractor.summarize(extraction.data)
            extraction.data = extraction.data.model_copy(update={"summary": summary})

        resume_repo.merge_metadata(
            db,
            resume,
            llm_extraction=extraction.to_metadata(),
            structured_data=extraction.data.model_dump(mode="json"),
        )
        if extraction.used_fallback:
            logger.warning("Structured extraction for %s used fallback: %s", resume.processing_id, extraction.error)
            message = "Structured extraction used fallback data"
        else:
            message = f"Structured extraction completed ({extraction.strategy})"
        resume_repo.add_log(db, resume, step=ProcessingStep.STRUCTURED_EXTRACTION, status=LogStatus.COMPLETED,
                            message=message, error_details=extraction.error, started_at=started, completed=True)
        return extraction

    def _create_candidate(self, resume: Resume, extraction: ExtractionResult) -> Optional[Candidate]:
        db = self.db
        started = _now()
        resume_repo.set_status(db, resume, status=ResumeStatus.TEXT_EXTRACTED,
                               stage=ProcessingStage.CANDIDATE_CREATION)
        resume_repo.add_log(db, resume, step=ProcessingStep.CANDIDATE_CREATION, status=LogStatus.STARTED,
                            message="Creating candidate", started_at=started)
        try:
            candidate = materialize_candidate(db, extraction.data, resume=resume)
        except Exception as e:
            logger.error("Candidate creation failed for %s: %s", resume.processing_id, e)
            resume_repo.add_log(db, resume, step=ProcessingStep.CANDIDATE_CREATION, status=LogStatus.FAILED,
                                message="Candidate creation failed", error_details=str(e),
                                started_at=started, completed=True)
            resume_repo.merge_metadata(db, resume, candidate_creation={"success": False, "error": str(e)})
            resume_repo.set_status(db, resume, status=ResumeStatus.ANALYZED,
                                   stage=ProcessingStage.CANDIDATE_CREATION_FAILED)
            return None

        resume_repo.add_log(db, resume, step=ProcessingStep.CANDIDATE_CREATION, status=LogStatus.COMPLETED,
                            message=f"Candidate {candidate.full_name} created", started_at=started, completed=True)
        resume_repo.merge_metadata(
            db,
            resume,
            candidate_creation={"success": True, "candidate_id": str(candidate.id), "created_at": _now().isoformat()},
        )
        resume_repo.set_status(db, resume, status=ResumeStatus.COMPLETED, stage=ProcessingStage.DONE)
        logger.info("Processing %s completed", resume.processing_id)
        return candidate


def _now() -> datetime:
    return datetime.now(timezone.utc)


def process_file(db: Session, upload: UploadedFile, *, uploaded_by: Optional[str] = None) -> ProcessingResult:
    return ResumeProcessor(db).process_file(upload, uploaded_by=uploaded_by)


# ---------------------------------------------------------------------
# STATUS, LISTING & CLEANUP (API COMPATIBILITY)
# ---------------------------------------------------------------------

def _log_to_dict(entry: ProcessingLog) -> dict[str, Any]:
    return {
        "step": entry.step,
        "status": entry.status,
        "message": entry.message,
        "error_details": entry.error_details,
        "started_at": entry.started_at,
        "completed_at": entry.completed_at,
    }


def _resume_to_summary(resume: Resume) -> dict[str, Any]:
    return {
        "id": resume.id,
        "processing_id": resume.processing_id,
        "original_file_name": resume.original_file_name,
        "file_type": resume.file_type,
        "status": resume.status,
        "processing_stage": resume.processing_stage,
        "candidate_id": resume.candidate_id,
        "uploaded_at": resume.uploaded_at,
    }


def get_processing_status(db: Session, resume_id: UUID) -> Optional[dict[str, Any]]:
    """The record plus its most recent log entries, newest first."""
    resume = resume_repo.get_resume(db, resume_id)
    if not resume:
        return None
    logs = resume_repo.get_recent_logs(db, resume.id, limit=RECENT_LOG_LIMIT)
    meta = resume.metadata_json or {}
    return {
        **_resume_to_summary(resume),
        "updated_at": resume.updated_at,
        "quality_assessment": meta.get("quality_assessment"),
        "used_fallback": (meta.get("llm_extraction") or {}).get("used_fallback"),
        "error": meta.get("error"),
        "logs": [_log_to_dict(entry) for entry in logs],
    }


def list_resume_summaries(
    db: Session, *, offset: int = 0, limit: int = 20, status: Optional[str] = None
) -> tuple[list[dict[str, Any]], int]:
    rows, total = resume_repo.list_resumes(db, offset=offset, limit=limit, status=status)
    return [_resume_to_summary(row) for row in rows], total


def get_resume_detail(db: Session, resume_id: UUID) -> Optional[dict[str, Any]]:
    resume = resume_repo.get_resume(db, resume_id)
    if not resume:
        return None
    return {
        **_resume_to_summary(resume),
        "file_size": resume.file_size,
        "mime_type": resume.mime_type,
        "uploaded_by": resume.uploaded_by,
        "extracted_text": resume.extracted_text,
        "metadata": resume.metadata_json or {},
        "updated_at": resume.updated_at,
        "logs": [_log_to_dict(entry) for entry in resume.processing_logs],
    }


def get_resume(db: Session, resume_id: UUID) -> Optional[Resume]:
    return resume_repo.get_resume(db, resume_id)


def cleanup_processing(db: Session, resume_id: UUID) -> bool:
    """Delete the stored file, the log entries and the record. The candidate, if any, is kept."""
    resume = resume_repo.get_resume(db, resume_id)
    if not resume:
        return False
    if remove_file(resume.file_path):
        logger.info("Removed file for %s: %s", resume.processing_id, resume.file_path)
    resume_repo.delete_resume(db, resume)
    return True
