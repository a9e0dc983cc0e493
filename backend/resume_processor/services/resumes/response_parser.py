# resume_processor/services/resumes/response_parser.py
"""
Turn a raw language-model response into StructuredResumeData.

Responses arrive fenced, wrapped in prose, with trailing commas, or cut off
mid-array when the model runs out of tokens. Recovery is an ordered list of
strategies, each `str -> Optional[dict]`; the first one that yields a dict wins
and its output is always normalized through StructuredResumeData. Parsing never
raises: total failure yields the fully defaulted structure.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from resume_processor.schemas.structured_resume import StructuredResumeData, empty_resume_data

logger = logging.getLogger("resumes.response_parser")

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

# Lexical repairs, applied in this order
_REPAIRS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r",(\s*[}\]])"), r"\1"),          # trailing comma before a closer
    (re.compile(r",\s*$"), ""),                    # dangling comma at the very end
    (re.compile(r',\s*"[^"]*$'), ""),              # incomplete trailing property name
    (re.compile(r':\s*"[^"]*$'), ": null"),        # unterminated string value
]
# An array left open at the end of the text: `"skills": ["a", "b"`
_OPEN_ARRAY_RE = re.compile(r'(:\s*\[[^\[\]{}]*?)[\s,]*$')

_FIELD_PATTERNS: Dict[str, re.Pattern] = {
    name: re.compile(rf'"{name}":\s*"([^"]+)"')
    for name in ("name", "email", "phone", "address", "linkedin", "github")
}
_SUMMARY_RE = re.compile(r'"summary":\s*"([^"]+)"')
_SKILLS_RE = re.compile(r'"skills":\s*\[(.*?)\]', re.DOTALL)
_QUOTED_RE = re.compile(r'"([^"]+)"')

Strategy = Callable[[str], Optional[Dict[str, Any]]]


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def repair_json_text(text: str) -> str:
    """Cheap textual fixes for the usual model mistakes. Never raises."""
    out = text
    for pattern, repl in _REPAIRS:
        out = pattern.sub(repl, out)
    if _OPEN_ARRAY_RE.search(out) and out.count("[") > out.count("]"):
        out = _OPEN_ARRAY_RE.sub(r"\1]", out)
    return out


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, dict):
        return value
    # Some models wrap the object in a one-element list
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
        return value[0]
    return None


def _loads(text: str) -> Optional[Dict[str, Any]]:
    try:
        return _as_object(json.loads(text))
    except (json.JSONDecodeError, ValueError):
        return None


# --- Strategies ---

def parse_direct(raw: str) -> Optional[Dict[str, Any]]:
    """Fences stripped, sliced from the first '{' to the last '}', repaired, parsed."""
    text = strip_code_fences(raw)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    sliced = text[start:end + 1]
    return _loads(sliced) or _loads(repair_json_text(sliced))


def parse_truncated(raw: str) -> Optional[Dict[str, Any]]:
    """
    Depth-tracking scan for responses cut off mid-generation.

    Walks the text from the first '{' tracking {/[ nesting outside strings.
    If the root object closes, the prefix up to that point is parsed. Otherwise
    the still-open brackets are closed, and failing that the object is cut back
    at each top-level comma (newest first) so every complete member survives.
    """
    text = strip_code_fences(raw)
    start = text.find("{")
    if start == -1:
        return None
    text = repair_json_text(text[start:])

    stack: List[str] = []
    member_ends: List[int] = []
    in_string = False
    escape = False
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            if not stack:
                return _loads(text[:i + 1])
        elif ch == "," and len(stack) == 1:
            member_ends.append(i)

    if not stack:
        return None

    if not in_string:
        closed = _loads(text.rstrip().rstrip(",") + "".join(reversed(stack)))
        if closed is not None:
            return closed

    for cut in reversed(member_ends):
        parsed = _loads(text[:cut] + "}")
        if parsed is not None:
            return parsed
    return None


def parse_by_regex(raw: str) -> Optional[Dict[str, Any]]:
    """Last resort: pull contact fields, summary and the skills array by pattern."""
    text = raw or ""
    personal = {}
    for name, pattern in _FIELD_PATTERNS.items():
        m = pattern.search(text)
        if m:
            personal[name] = m.group(1)

    data: Dict[str, Any] = {}
    if personal:
        data["personal_info"] = personal
    m = _SUMMARY_RE.search(text)
    if m:
        data["summary"] = m.group(1)
    m = _SKILLS_RE.search(text)
    if m:
        skills = _QUOTED_RE.findall(m.group(1))
        if skills:
            data["skills"] = skills
    return data or None


STRATEGIES: List[Tuple[str, Strategy]] = [
    ("direct", parse_direct),
    ("truncation_repair", parse_truncated),
    ("regex", parse_by_regex),
]


def normalize_structured_data(data: Any) -> StructuredResumeData:
    try:
        return StructuredResumeData.model_validate(data if isinstance(data, dict) else {})
    except Exception as e:
        logger.warning("Structured data failed normalization, using empty structure: %s", e)
        return empty_resume_data()


def parse_extraction_response_details(raw: Any) -> Tuple[StructuredResumeData, Optional[str]]:
    """
    Returns (data, strategy). `strategy` names the recovery step that produced
    the data, or None when nothing could be recovered.
    """
    if not isinstance(raw, str) or not raw.strip():
        return empty_resume_data(), None

    for name, strategy in STRATEGIES:
        try:
            parsed = strategy(raw)
        except Exception as e:  # a strategy bug must not break the chain
            logger.warning("Response parse strategy %s raised: %s", name, e)
            continue
        if parsed is not None:
            if name != "direct":
                logger.info("Model response recovered with %s strategy", name)
            return normalize_structured_data(parsed), name

    logger.warning("Could not recover any data from model response (%d chars)", len(raw))
    return empty_resume_data(), None


def parse_extraction_response(raw: Any) -> StructuredResumeData:
    """Never raises; always a fully defaulted StructuredResumeData."""
    data, _ = parse_extraction_response_details(raw)
    return data
