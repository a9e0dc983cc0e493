"""Resume file reading and format-aware text extraction (PDF/DOCX/DOC/TXT) with OCR fallback for image-based documents."""

from __future__ import annotations

import hashlib
import logging
import mimetypes
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import fitz  # PyMuPDF
import pdfplumber
from docx import Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table

from resume_processor.services.resumes.ocr import OcrRunner
from resume_processor.services.resumes.text_quality import clean_text

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("pdf", "docx", "doc", "txt")
# Trimmed text-layer length above which a document is treated as text-based
MIN_TEXT_LAYER_CHARS = 10
DOC_CAVEAT = "DOC file processed - quality may vary"


class UnsupportedFormatError(ValueError):
    """Declared file type is outside SUPPORTED_FORMATS."""


class ExtractionError(RuntimeError):
    """The underlying decoder could not read the document."""


@dataclass(frozen=True)
class ExtractedText:
    text: str
    extraction_method: str = "text"  # "text" | "ocr"
    ocr_confidence: Optional[float] = None
    page_count: Optional[int] = None
    note: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    extracted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_metadata(self) -> dict[str, Any]:
        meta: dict[str, Any] = {
            "extraction_method": self.extraction_method,
            "extracted_at": self.extracted_at.isoformat(),
        }
        if self.ocr_confidence is not None:
            meta["ocr_confidence"] = self.ocr_confidence
        if self.page_count is not None:
            meta["page_count"] = self.page_count
        if self.note:
            meta["note"] = self.note
        meta.update(self.details)
        return meta


# --- File I/O ---

def sha256_of_bytes(data: bytes) -> str:
    """Return SHA256 hash of bytes."""
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def detect_mime(path: Path) -> str:
    """Guess MIME type from extension."""
    guess, _ = mimetypes.guess_type(str(path))
    return guess or "application/octet-stream"


def read_file_bytes(path: Path) -> bytes:
    """Read file content as bytes."""
    return path.read_bytes()


def get_file_metadata(path: Path) -> dict[str, Any]:
    try:
        stats = path.stat()
    except OSError as e:
        logger.warning("Could not stat %s: %s", path, e)
        return {}
    return {
        "size": stats.st_size,
        "modified": datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
        "extension": path.suffix.lower().lstrip("."),
        "filename": path.name,
    }


# --- Parsing ---

def extract_text(path: Path | str, file_type: str, *, ocr: Optional[OcrRunner] = None) -> ExtractedText:
    """
    Main entry point: dispatch on the declared type and return cleaned text.
    Raises UnsupportedFormatError / ExtractionError; OCR problems never raise.
    """
    path = Path(path)
    kind = (file_type or "").lower().lstrip(".")
    if kind not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(f"Unsupported file type: {file_type}")

    ocr = ocr or OcrRunner()
    if kind == "pdf":
        result = _extract_pdf(path, ocr)
    elif kind == "docx":
        result = _extract_docx(path, ocr)
    elif kind == "doc":
        result = _extract_doc(path)
    else:
        result = _extract_txt(path)

    logger.info(
        "Extracted %d chars from %s via %s", len(result.text), path.name, result.extraction_method
    )
    return result


def _finalize(raw: str, **kwargs: Any) -> ExtractedText:
    return ExtractedText(text=clean_text(raw), **kwargs)


def _extract_txt(path: Path) -> ExtractedText:
    try:
        raw = read_file_bytes(path).decode("utf-8", errors="ignore")
    except OSError as e:
        raise ExtractionError(f"Failed to extract text from TXT: {e}") from e
    return _finalize(raw, details={"encoding": "utf8"})


def _extract_pdf(path: Path, ocr: OcrRunner) -> ExtractedText:
    try:
        text, page_count, details = _read_pdf_text_layer(path)
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e

    if len(text.strip()) > MIN_TEXT_LAYER_CHARS:
        return _finalize(text, extraction_method="text", page_count=page_count, details=details)

    logger.warning("PDF %s appears to be image-based, falling back to OCR...", path.name)
    result = ocr.run_pdf(path)
    return _finalize(
        result.text,
        extraction_method="ocr",
        ocr_confidence=result.confidence,
        page_count=page_count,
        details={**details, "ocr_units": result.units},
    )


def _read_pdf_text_layer(path: Path) -> tuple[str, int, dict[str, Any]]:
    """
    PyMuPDF first; if its output is fragmented (one char per line) re-read
    with pdfplumber. Page count always comes from PyMuPDF.
    """
    with fitz.open(str(path)) as doc:
        page_count = len(doc)
        info = {k: v for k, v in (doc.metadata or {}).items() if v}
        text = "\n".join(page.get_text("text", sort=True) for page in doc)

    details: dict[str, Any] = {"pdf_info": info, "text_layer_parser": "pymupdf"}
    if text.strip() and _is_extraction_broken(text):
        logger.info("PyMuPDF produced fragmented text for %s, retrying with pdfplumber", path.name)
        try:
            with pdfplumber.open(str(path)) as pdf:
                pages = [p.extract_text(x_tolerance=2, y_tolerance=3) or "" for p in pdf.pages]
            retry = "\n".join(pages)
            if retry.strip() and not _is_extraction_broken(retry):
                text = retry
                details["text_layer_parser"] = "pdfplumber"
        except Exception as e:
            logger.warning("pdfplumber retry failed for %s: %s", path.name, e)
    return text, page_count, details


def _is_extraction_broken(text: str) -> bool:
    """
    Heuristic to check if text extraction resulted in one-char-per-line garbage.
    """
    lines = text.strip().split("\n")
    short_lines = sum(1 for line in lines if len(line.strip()) <= 2)
    return len(lines) > 10 and (short_lines / len(lines)) > 0.4


def _xml_text(element) -> str:
    """
    Collect <w:t> runs from an element's XML, including text boxes anchored to it
    that python-docx's paragraph API skips.
    """
    parts = []
    for node in element.iter():
        tag = node.tag if isinstance(node.tag, str) else ""
        if tag.endswith("}t") and node.text:
            parts.append(node.text)
        elif tag.endswith("}tab"):
            parts.append("\t")
        elif tag.endswith(("}br", "}cr", "}p")):
            parts.append("\n")
    return "".join(parts).strip()


def _read_docx_structure(path: Path) -> str:
    """Headers, then body paragraphs and table rows in document order."""
    doc = Document(str(path))
    out = []

    seen_parts = set()
    for section in doc.sections:
        header = section.header
        if header is None or header.is_linked_to_previous or header.part in seen_parts:
            continue
        seen_parts.add(header.part)
        header_text = _xml_text(header.part.element)
        if header_text:
            out.append(header_text)

    for element in doc.element.body:
        if isinstance(element, CT_P):
            para = _xml_text(element)
            if para:
                out.append(para)
        elif isinstance(element, CT_Tbl):
            for row in Table(element, doc).rows:
                cells = [c.text.strip() for c in row.cells if c.text.strip()]
                if cells:
                    out.append(" | ".join(cells))
    return "\n".join(out)


def _extract_docx(path: Path, ocr: OcrRunner) -> ExtractedText:
    try:
        text = _read_docx_structure(path)
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from DOCX: {e}") from e

    if len(text.strip()) > MIN_TEXT_LAYER_CHARS:
        return _finalize(text, extraction_method="text")

    logger.warning("DOCX %s appears to be image-based, falling back to OCR...", path.name)
    result = ocr.run_docx(path)
    return _finalize(
        result.text,
        extraction_method="ocr",
        ocr_confidence=result.confidence,
        page_count=result.units,
        details={"ocr_units": result.units},
    )


def _extract_doc(path: Path) -> ExtractedText:
    """
    Legacy .doc: try the DOCX reader, then catdoc (if installed). No OCR path;
    the result carries a caveat note instead of a confidence.
    """
    try:
        text = _read_docx_structure(path)
        return _finalize(text, extraction_method="text", note=DOC_CAVEAT)
    except Exception as docx_error:
        logger.info("DOCX reader could not open %s (%s); trying catdoc", path.name, docx_error)
        try:
            text = _read_with_catdoc(path)
        except Exception as e:
            raise ExtractionError(f"Failed to extract text from DOC: {docx_error}") from e
        return _finalize(text, extraction_method="text", note=DOC_CAVEAT, details={"parser": "catdoc"})


def _read_with_catdoc(path: Path) -> str:
    result = subprocess.run(
        ["catdoc", "-w", str(path)],
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="ignore",
    )
    if result.returncode != 0:
        raise RuntimeError(f"catdoc failed: {result.stderr.strip()}")
    return result.stdout
