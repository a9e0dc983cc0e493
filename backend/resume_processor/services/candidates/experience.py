# resume_processor/services/candidates/experience.py
"""Loose date parsing and the cached years-of-experience figure for a candidate."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable, Optional

from resume_processor.schemas.structured_resume import ExperienceEntry

AVG_DAYS_PER_MONTH = 30.44

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Ordered list of formats (most specific first)
_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S",
    "%B %d, %Y", "%b %d, %Y",
    "%d %B %Y", "%d %b %Y",
    "%B %Y", "%b %Y",
    "%Y-%m", "%Y/%m/%d",
    "%m/%d/%Y", "%m/%Y", "%Y/%m", "%Y",
    "%b-%Y", "%B-%Y",
)


def parse_date(raw: Any) -> Optional[datetime]:
    """
    Accepts YYYY-MM-DD literally, otherwise a handful of loose formats
    ('Jan 2020', 'March 3, 2024', '2020-05', '05/2020', '2020').
    Anything unparseable or invalid is None; never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.replace(tzinfo=None)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)

    val = str(raw).strip()
    if not val:
        return None
    if _ISO_DATE_RE.match(val):
        try:
            return datetime.strptime(val, "%Y-%m-%d")
        except ValueError:
            return None

    val = val.replace("–", "-").replace(".", "").strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(val.title() if "%b" in fmt or "%B" in fmt else val, fmt)
        except ValueError:
            continue
    return None


def _months_between(start: datetime, end: datetime) -> float:
    return (end - start).days / AVG_DAYS_PER_MONTH


def calculate_years_of_experience(
    experiences: Iterable[ExperienceEntry], now: Optional[datetime] = None
) -> int:
    """
    Sum of (end - start) in months over all entries, divided by 12 and rounded.
    - end is `now` for current roles or a missing/unparseable end date
    - an unparseable start falls back to `now` (zero contribution)
    - entries ending before they start contribute nothing
    """
    now = now or datetime.now()
    total_months = 0.0
    for exp in experiences:
        start = parse_date(exp.start_date) or now
        end = now if exp.is_current or not exp.end_date else (parse_date(exp.end_date) or now)
        if end < start:
            continue
        total_months += _months_between(start, end)
    return round(total_months / 12)
