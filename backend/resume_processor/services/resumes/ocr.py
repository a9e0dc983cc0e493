# resume_processor/services/resumes/ocr.py
"""
OCR fallback for image-based resumes.

PDF pages are rasterized with PyMuPDF, DOCX images are pulled from word/media/,
every unit is preprocessed with Pillow and recognized by a Tesseract worker that
lives only for that one unit. Intermediate rasters sit in a private temp dir that
is always removed before returning.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ContextManager, Iterator, List, Optional, Protocol

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageFilter, ImageOps

from resume_processor.core.config import settings

logger = logging.getLogger("resumes.ocr")

# A4 at 300 DPI
A4_PIXELS = (2480, 3508)
DOCX_MEDIA_PREFIX = "word/media/"
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp"}

PDF_OCR_FAILED_TEXT = (
    "PDF OCR extraction produced no text. This is an image-based PDF that needs manual processing."
)
DOCX_OCR_FAILED_TEXT = (
    "DOCX OCR extraction produced no text. This appears to be an image-based DOCX file that needs manual processing."
)


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float
    units: int = 0


class RecognitionWorker(Protocol):
    def recognize(self, image_path: Path) -> OcrResult: ...


WorkerFactory = Callable[[str], ContextManager[RecognitionWorker]]


class TesseractWorker:
    """Single-use recognizer; words are regrouped into lines from image_to_data output."""

    def __init__(self, language: str):
        self.language = language
        self._closed = False

    def recognize(self, image_path: Path) -> OcrResult:
        if self._closed:
            raise RuntimeError("Recognition worker already terminated")
        with Image.open(image_path) as img:
            data = pytesseract.image_to_data(img, lang=self.language, output_type=pytesseract.Output.DICT)

        lines: dict[tuple[int, int, int], list[str]] = {}
        confidences: List[float] = []
        for i, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            if not word:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            conf = float(data["conf"][i])
            if conf >= 0:  # tesseract reports -1 for non-word boxes
                confidences.append(conf)

        text_lines: List[str] = []
        last_par = None
        for key in sorted(lines.keys()):
            par = key[:2]
            if last_par is not None and par != last_par:
                text_lines.append("")
            text_lines.append(" ".join(lines[key]))
            last_par = par
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(text="\n".join(text_lines).strip(), confidence=confidence, units=1)

    def terminate(self) -> None:
        self._closed = True


@contextmanager
def tesseract_worker(language: str) -> Iterator[TesseractWorker]:
    """Acquire a fresh worker and terminate it on every exit path."""
    if settings.TESSERACT_CMD:
        pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD
    worker = TesseractWorker(language)
    try:
        yield worker
    finally:
        worker.terminate()


def preprocess_image(image_path: Path, out_dir: Path) -> Path:
    """Resize within an A4 raster, greyscale, stretch contrast and sharpen."""
    out_path = out_dir / f"{image_path.stem}.processed.png"
    with Image.open(image_path) as img:
        processed = img.convert("RGB")
        processed.thumbnail(A4_PIXELS, Image.Resampling.LANCZOS)
        processed = ImageOps.grayscale(processed)
        processed = ImageOps.autocontrast(processed)
        processed = processed.filter(ImageFilter.SHARPEN)
        processed.save(out_path, format="PNG")
    return out_path


def rasterize_pdf_page(doc: "fitz.Document", page_number: int, dpi: int, out_dir: Path) -> Path:
    page = doc[page_number]
    pix = page.get_pixmap(dpi=dpi)
    out_path = out_dir / f"page-{page_number + 1}.png"
    pix.save(str(out_path))
    return out_path


def extract_docx_images(docx_path: Path, out_dir: Path) -> List[Path]:
    """Write every image from the DOCX media folder to out_dir, in archive order."""
    images: List[Path] = []
    with zipfile.ZipFile(docx_path) as archive:
        for i, entry in enumerate(archive.infolist()):
            if entry.is_dir() or not entry.filename.startswith(DOCX_MEDIA_PREFIX):
                continue
            suffix = Path(entry.filename).suffix.lower()
            if suffix not in IMAGE_SUFFIXES:
                logger.debug("Skipping non-raster media entry %s", entry.filename)
                continue
            target = out_dir / f"media-{i}{suffix}"
            with archive.open(entry) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            images.append(target)
    return images


class OcrRunner:
    """
    Sequential OCR over page/image units.
    - Workers are created per unit via `worker_factory` (no pooling, bounded memory).
    - Units with empty text are excluded from the confidence average.
    - Zero recognized units yields the format's sentinel text with confidence 0.
    """

    def __init__(
        self,
        *,
        worker_factory: WorkerFactory = tesseract_worker,
        language: Optional[str] = None,
        dpi: Optional[int] = None,
        max_pages: Optional[int] = None,
        tmp_root: Optional[Path] = None,
    ):
        self.worker_factory = worker_factory
        self.language = language or settings.OCR_LANGUAGE
        self.dpi = dpi or settings.OCR_DPI
        self.max_pages = max_pages or settings.OCR_MAX_PAGES
        self.tmp_root = tmp_root

    def run_pdf(self, pdf_path: Path) -> OcrResult:
        logger.info("Running OCR on image-based PDF %s (first %d pages)", pdf_path.name, self.max_pages)
        return self._run(lambda work_dir: self._pdf_rasters(pdf_path, work_dir), PDF_OCR_FAILED_TEXT)

    def run_docx(self, docx_path: Path) -> OcrResult:
        logger.info("Running OCR on embedded images of %s", docx_path.name)
        return self._run(lambda work_dir: extract_docx_images(docx_path, work_dir), DOCX_OCR_FAILED_TEXT)

    def _pdf_rasters(self, pdf_path: Path, work_dir: Path) -> List[Path]:
        with fitz.open(str(pdf_path)) as doc:
            count = min(len(doc), self.max_pages)
            return [rasterize_pdf_page(doc, n, self.dpi, work_dir) for n in range(count)]

    def _run(self, collect_units: Callable[[Path], List[Path]], failed_text: str) -> OcrResult:
        work_dir = Path(tempfile.mkdtemp(prefix="resume-ocr-", dir=self.tmp_root))
        units: List[Path] = []
        try:
            units = collect_units(work_dir)
            texts: List[str] = []
            confidences: List[float] = []
            for unit in units:
                try:
                    processed = preprocess_image(unit, work_dir)
                    with self.worker_factory(self.language) as worker:
                        result = worker.recognize(processed)
                except Exception as e:
                    logger.warning("OCR failed for %s: %s", unit.name, e)
                    continue
                if result.text.strip():
                    texts.append(result.text.strip())
                    confidences.append(result.confidence)

            if not texts:
                logger.warning("OCR produced no text from %d unit(s)", len(units))
                return OcrResult(text=failed_text, confidence=0.0, units=len(units))

            confidence = sum(confidences) / len(confidences)
            logger.info("OCR recognized %d/%d unit(s), mean confidence %.1f", len(texts), len(units), confidence)
            # Plain blank-line join: no page/image markers in the prompt text
            return OcrResult(text="\n\n".join(texts), confidence=confidence, units=len(units))
        except Exception as e:
            logger.exception("OCR extraction error: %s", e)
            return OcrResult(text=failed_text, confidence=0.0, units=len(units))
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
