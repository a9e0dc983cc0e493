# resume_processor/services/resumes/text_quality.py
"""Text normalization for LLM consumption and deterministic quality scoring of extracted resume text."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, List

# Control characters except \t and \n (\r is normalized before this runs)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_SPACES_RE = re.compile(r"[ \t\u00a0]+")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")
# ASCII word characters, same as the scoring was originally tuned against
_SPECIAL_CHAR_RE = re.compile(r"[^A-Za-z0-9_\s]")

# NOTE: hand-tuned keyword list and deductions; keep in sync with product expectations
RESUME_KEYWORDS = (
    "experience", "education", "skills", "work", "employment",
    "university", "college", "degree", "bachelor", "master",
    "phone", "email", "address", "linkedin",
)
SHORT_TEXT_LENGTH = 50
SHORT_TEXT_PENALTY = 30
SPECIAL_CHAR_RATIO = 0.3
SPECIAL_CHAR_PENALTY = 20
MIN_KEYWORDS = 2
KEYWORD_PENALTY = 25


def clean_text(text: Any) -> str:
    """
    Normalize extracted text so it reads as one continuous document:
    1) unify line endings
    2) drop control characters (tabs/newlines survive)
    3) collapse runs of spaces/tabs
    4) trim every line
    5) keep at most one blank line between paragraphs
    Idempotent: clean_text(clean_text(x)) == clean_text(x).
    """
    if not text or not isinstance(text, str):
        return ""
    buf = text.replace("\r\n", "\n").replace("\r", "\n")
    buf = _CONTROL_RE.sub("", buf)
    buf = _SPACES_RE.sub(" ", buf)
    buf = "\n".join(line.strip() for line in buf.split("\n"))
    buf = _MANY_NEWLINES_RE.sub("\n\n", buf)
    return buf.strip()


@dataclass(frozen=True)
class QualityAssessment:
    quality: str
    confidence: int
    issues: List[str] = field(default_factory=list)
    word_count: int = 0
    character_count: int = 0
    keywords_found: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _quality_tier(confidence: int) -> str:
    if confidence >= 90:
        return "excellent"
    if confidence >= 70:
        return "good"
    if confidence >= 50:
        return "fair"
    return "poor"


def assess_text_quality(text: Any) -> QualityAssessment:
    """Score extracted text from 0-100 and map it to a quality tier. Pure; no I/O."""
    if not text or not isinstance(text, str):
        return QualityAssessment(quality="poor", confidence=0, issues=["No text extracted"])

    issues: List[str] = []
    confidence = 100

    if len(text) < SHORT_TEXT_LENGTH:
        issues.append("Very short text extracted")
        confidence -= SHORT_TEXT_PENALTY

    # A high share of punctuation/symbols usually means OCR noise
    special_ratio = len(_SPECIAL_CHAR_RE.findall(text)) / len(text)
    if special_ratio > SPECIAL_CHAR_RATIO:
        issues.append("High ratio of special characters")
        confidence -= SPECIAL_CHAR_PENALTY

    lowered = text.lower()
    keywords_found = sum(1 for kw in RESUME_KEYWORDS if kw in lowered)
    if keywords_found < MIN_KEYWORDS:
        issues.append("Few resume-related keywords found")
        confidence -= KEYWORD_PENALTY

    confidence = max(0, confidence)
    return QualityAssessment(
        quality=_quality_tier(confidence),
        confidence=confidence,
        issues=issues,
        word_count=len(text.split()),
        character_count=len(text),
        keywords_found=keywords_found,
    )
