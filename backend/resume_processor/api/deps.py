# resume_processor/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from resume_processor.db.base import get_db
from resume_processor.services.resumes.extraction_pipeline import ResumeExtractor
from resume_processor.services.resumes.ingestion_pipeline import ResumeProcessor


def get_extractor() -> ResumeExtractor:
    return ResumeExtractor()


def get_resume_processor(
    db: Session = Depends(get_db),
    extractor: ResumeExtractor = Depends(get_extractor),
) -> ResumeProcessor:
    return ResumeProcessor(db, extractor=extractor)
