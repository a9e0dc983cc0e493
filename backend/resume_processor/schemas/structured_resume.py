# resume_processor/schemas/structured_resume.py
# -----------------------------------------------------------------------------
# Canonical structured-resume contract. It is both the shape the language model
# is asked to emit and the shape persisted under metadata.structured_data.
# Every optional field defaults to None / [] so consumers only branch on values,
# never on key presence. Validators coerce loosely typed model output and never
# reject a record: bad values degrade to None.
# -----------------------------------------------------------------------------
from __future__ import annotations

import math
import re
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

_YEAR_RE = re.compile(r"(19|20)\d{2}")
_MAX_YEAR = 9999
_TRUE_STRINGS = {"true", "yes", "y", "1", "current", "present"}


def _clean_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _to_year(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if abs(value) <= _MAX_YEAR else None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and abs(value) <= _MAX_YEAR else None
    m = _YEAR_RE.search(str(value))
    return int(m.group(0)) if m else None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            value = float(value)
        except OverflowError:
            return None
        return value if math.isfinite(value) else None
    m = re.search(r"\d+(?:\.\d+)?", str(value))
    return float(m.group(0)) if m else None


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value) if isinstance(value, (int, float)) else False


class _Lenient(BaseModel):
    @model_validator(mode="before")
    @classmethod
    def _require_mapping(cls, data: Any) -> Any:
        return data if isinstance(data, (dict, BaseModel)) else {}


class PersonalInfo(_Lenient):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _clean_str(v)


class ExperienceEntry(_Lenient):
    company: Optional[str] = None
    position: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool = False
    description: Optional[str] = None

    @field_validator("company", "position", "start_date", "end_date", "description", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _clean_str(v)

    @field_validator("is_current", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return _to_bool(v)


class EducationEntry(_Lenient):
    institution: Optional[str] = None
    degree: Optional[str] = None
    field: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    gpa: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _graduation_date(cls, data: Any) -> Any:
        # Older prompt shape used graduation_date instead of end_year
        if isinstance(data, dict) and data.get("end_year") in (None, "") and data.get("graduation_date"):
            data = {**data, "end_year": data["graduation_date"]}
        return data

    @field_validator("institution", "degree", "field", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _clean_str(v)

    @field_validator("start_year", "end_year", mode="before")
    @classmethod
    def _years(cls, v: Any) -> Optional[int]:
        return _to_year(v)

    @field_validator("gpa", mode="before")
    @classmethod
    def _gpa(cls, v: Any) -> Optional[float]:
        return _to_float(v)


class CertificationDetail(_Lenient):
    """Detailed certification; bare strings stay strings in StructuredResumeData.certifications."""
    name: Optional[str] = None
    issuer: Optional[str] = None
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _clean_str(v)


Certification = Union[str, CertificationDetail]


class StructuredResumeData(_Lenient):
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    summary: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)

    @field_validator("personal_info", mode="before")
    @classmethod
    def _personal_info(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, BaseModel)) else {}

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, v: Any) -> Optional[str]:
        return _clean_str(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _skills(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]

    @field_validator("experience", "education", mode="before")
    @classmethod
    def _entries(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [e for e in v if isinstance(e, (dict, BaseModel))]

    @field_validator("certifications", mode="before")
    @classmethod
    def _certifications(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        out: list[Any] = []
        for cert in v:
            if isinstance(cert, str):
                if cert.strip():
                    out.append(cert.strip())
            elif isinstance(cert, (dict, CertificationDetail)):
                out.append(cert)
        return out


def empty_resume_data(**overrides: Any) -> StructuredResumeData:
    """Fully defaulted structure, optionally pre-filled (e.g. personal_info / skills)."""
    return StructuredResumeData.model_validate(overrides)
