# resume_processor/services/resumes/extraction_pipeline.py
"""
Resume Extraction Pipeline - structured-field extraction from cleaned resume text.
"""
# -----------------------------------------------------------------------------
# PURPOSE
# Ask the language model for StructuredResumeData, recover what we can from its
# response, and degrade to a regex/keyword fallback when the call or the parse
# fails. Nothing here raises to the caller: the ingestion pipeline always gets
# a fully defaulted structure plus metadata saying how it was obtained.
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from resume_processor.core.config import settings
from resume_processor.schemas.structured_resume import StructuredResumeData, empty_resume_data
from resume_processor.services.common.llm_client import LLMClient, get_llm_client, load_prompt
from resume_processor.services.resumes.response_parser import parse_extraction_response_details

logger = logging.getLogger("resumes.extraction")

RESUME_EXTRACTION_PROMPT = load_prompt("resumes/resume_extraction.prompt.txt")
CANDIDATE_SUMMARY_PROMPT = load_prompt("resumes/candidate_summary.prompt.txt")

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
PHONE_RE = re.compile(r"(\+?1?[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})")

FALLBACK_SKILL_KEYWORDS = (
    "JavaScript", "Python", "Java", "React", "Node.js", "SQL", "HTML", "CSS",
    "Git", "Docker", "AWS", "MongoDB", "PostgreSQL", "TypeScript", "Vue.js",
    "Angular", "Express", "Django", "Flask", "Spring", "Laravel", "PHP",
)
SUMMARY_SKILL_COUNT = 5


@dataclass
class ExtractionResult:
    data: StructuredResumeData
    used_fallback: bool
    error: Optional[str] = None
    model: Optional[str] = None
    strategy: Optional[str] = None
    extracted_at: Optional[datetime] = None

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "used_fallback": self.used_fallback,
            "error": self.error,
            "model": self.model,
            "strategy": self.strategy,
            "schema_version": settings.EXTRACTION_SCHEMA_VERSION,
            "extracted_at": (self.extracted_at or datetime.now(timezone.utc)).isoformat(),
        }


def build_extraction_prompt(resume_text: str) -> str:
    # str.replace: the template is full of literal JSON braces
    return RESUME_EXTRACTION_PROMPT.replace("{resume_text}", resume_text)


def build_summary_prompt(data: StructuredResumeData) -> str:
    payload = json.dumps(data.model_dump(exclude={"summary"}), ensure_ascii=False, indent=2)
    return CANDIDATE_SUMMARY_PROMPT.replace("{candidate_json}", payload)


def fallback_extraction(resume_text: str) -> StructuredResumeData:
    """Email/phone by pattern and a fixed keyword list of skills, matched case-insensitively."""
    text = resume_text or ""
    email = EMAIL_RE.search(text)
    phone = PHONE_RE.search(text)
    lowered = text.lower()
    skills = [kw for kw in FALLBACK_SKILL_KEYWORDS if kw.lower() in lowered]
    return empty_resume_data(
        personal_info={
            "email": email.group(0) if email else None,
            "phone": phone.group(0) if phone else None,
        },
        skills=skills,
    )


def fallback_summary(data: StructuredResumeData) -> str:
    name = data.personal_info.name or "Candidate"
    count = len(data.experience)
    skills = ", ".join(data.skills[:SUMMARY_SKILL_COUNT]) or "various technologies"
    plural = "" if count == 1 else "s"
    return f"{name} is a professional with {count} work experience{plural} and expertise in {skills}."


class ResumeExtractor:
    """
    Structured extraction and summary generation over an injected LLMClient.
    Without a client the process-wide one is resolved on first use.
    """

    def __init__(self, client: Optional[LLMClient] = None):
        self._client = client

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = get_llm_client()
        return self._client

    def extract_structured(self, resume_text: str) -> ExtractionResult:
        now = datetime.now(timezone.utc)
        if not resume_text or not resume_text.strip():
            logger.warning("No resume text to extract from; using fallback structure")
            return ExtractionResult(
                data=fallback_extraction(""), used_fallback=True, error="empty resume text", extracted_at=now
            )

        try:
            completion = self.client.complete(
                build_extraction_prompt(resume_text),
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
                timeout=settings.LLM_TIMEOUT_S,
            )
        except Exception as e:
            logger.warning("Structured extraction call failed, using fallback: %s", e)
            return ExtractionResult(
                data=fallback_extraction(resume_text), used_fallback=True, error=str(e), extracted_at=now
            )

        try:
            data, strategy = parse_extraction_response_details(completion.text)
        except Exception as e:
            logger.exception("Model response handling crashed, using fallback")
            return ExtractionResult(
                data=fallback_extraction(resume_text),
                used_fallback=True,
                error=f"response handling failed: {e}",
                model=completion.model,
                extracted_at=now,
            )
        if strategy is None:
            logger.warning("Model response could not be parsed (%d chars), using fallback", len(completion.text))
            return ExtractionResult(
                data=fallback_extraction(resume_text),
                used_fallback=True,
                error="unparseable model response",
                model=completion.model,
                extracted_at=now,
            )

        logger.info(
            "Structured extraction done via %s: %d skills, %d experience, %d education",
            strategy, len(data.skills), len(data.experience), len(data.education),
        )
        return ExtractionResult(
            data=data, used_fallback=False, model=completion.model, strategy=strategy, extracted_at=now
        )

    def summarize(self, data: StructuredResumeData) -> str:
        """2-3 sentence summary from structured data; templated sentence on any failure."""
        try:
            completion = self.client.complete(
                build_summary_prompt(data),
                temperature=settings.SUMMARY_TEMPERATURE,
                max_tokens=settings.SUMMARY_MAX_TOKENS,
                timeout=settings.LLM_TIMEOUT_S,
            )
        except Exception as e:
            logger.warning("Summary generation failed, using template: %s", e)
            return fallback_summary(data)
        text = completion.text.strip() if isinstance(completion.text, str) else ""
        return text or fallback_summary(data)

    def test_connection(self) -> Dict[str, Any]:
        try:
            return self.client.test_connection()
        except ValueError as e:
            return {"success": False, "message": str(e)}
