# Purpose: Processing records for uploaded resume files and their append-only step log.
from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import Column, Text, String, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from resume_processor.db.base import Base, JSONType


class ResumeStatus(str, Enum):
    PROCESSING = "PROCESSING"
    TEXT_EXTRACTED = "TEXT_EXTRACTED"
    ANALYZED = "ANALYZED"      # text + structured data, no candidate
    COMPLETED = "COMPLETED"    # candidate created
    FAILED = "FAILED"          # text extraction failed


TERMINAL_STATUSES = {ResumeStatus.ANALYZED, ResumeStatus.COMPLETED, ResumeStatus.FAILED}


class ProcessingStage(str, Enum):
    TEXT_EXTRACTION = "TEXT_EXTRACTION"
    TEXT_EXTRACTION_FAILED = "TEXT_EXTRACTION_FAILED"
    READY_FOR_ANALYSIS = "READY_FOR_ANALYSIS"
    STRUCTURED_EXTRACTION = "STRUCTURED_EXTRACTION"
    CANDIDATE_CREATION = "CANDIDATE_CREATION"
    CANDIDATE_CREATION_FAILED = "CANDIDATE_CREATION_FAILED"
    DONE = "DONE"


class ProcessingStep(str, Enum):
    TEXT_EXTRACTION = "TEXT_EXTRACTION"
    STRUCTURED_EXTRACTION = "STRUCTURED_EXTRACTION"
    CANDIDATE_CREATION = "CANDIDATE_CREATION"


class LogStatus(str, Enum):
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Resume(Base):
    """
    One row per uploaded file.
    - `status` / `processing_stage`: pipeline state machine (see ResumeStatus / ProcessingStage).
    - `metadata_json`: accumulated sub-stage results (text extraction, quality, LLM extraction,
      candidate creation). Always reassigned, never mutated in place.
    - `candidate`: the durable product; it outlives this record.
    """
    __tablename__ = "resumes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    processing_id = Column(String(64), nullable=False, unique=True)
    original_file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=True)
    file_type = Column(String(16), nullable=False)
    mime_type = Column(Text, nullable=True)
    uploaded_by = Column(String(128), nullable=True)

    status = Column(String(32), nullable=False, default=ResumeStatus.PROCESSING.value)
    processing_stage = Column(String(64), nullable=False, default=ProcessingStage.TEXT_EXTRACTION.value)

    extracted_text = Column(Text, nullable=True)
    metadata_json = Column(JSONType, nullable=True)

    candidate_id = Column(Uuid(as_uuid=True), ForeignKey("candidates.id", ondelete="SET NULL"), nullable=True)

    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    candidate = relationship("Candidate", back_populates="resumes")
    processing_logs = relationship(
        "ProcessingLog",
        back_populates="resume",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [ProcessingLog.started_at, ProcessingLog.completed_at.asc().nulls_first()],
    )


class ProcessingLog(Base):
    __tablename__ = "processing_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    resume_id = Column(Uuid(as_uuid=True), ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False)

    step = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False)
    message = Column(Text, nullable=True)
    error_details = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    resume = relationship("Resume", back_populates="processing_logs")
