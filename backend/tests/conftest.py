"""Shared fixtures: in-memory database, fake model client, fake OCR workers and fixture documents."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from contextlib import contextmanager  # noqa: E402
from pathlib import Path  # noqa: E402

import fitz  # noqa: E402
import pytest  # noqa: E402
from docx import Document  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import resume_processor.models  # noqa: E402,F401
from resume_processor.db.base import Base  # noqa: E402
from resume_processor.services.common.llm_client import Completion, LLMError  # noqa: E402
from resume_processor.services.resumes.ocr import OcrRunner  # noqa: E402


JANE_DOE_TEXT = (
    "Jane Doe\n"
    "jane@x.com\n"
    "Skills: Python, SQL\n"
    "Experience: Acme Corp, Engineer, 2019-01-01 to 2021-01-01"
)

JANE_DOE_RESPONSE = """{
  "personal_info": {"name": "Jane Doe", "email": "jane@x.com", "phone": null, "address": null,
                    "linkedin": null, "github": null},
  "summary": null,
  "skills": ["Python", "SQL"],
  "experience": [
    {"company": "Acme Corp", "position": "Engineer", "start_date": "2019-01-01",
     "end_date": "2021-01-01", "is_current": false, "description": null}
  ],
  "education": [],
  "certifications": []
}"""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# Language model
# ---------------------------------------------------------------------------

class FakeLLMClient:
    """Returns canned responses in order (the last one repeats) or raises `error`."""

    provider = "fake"

    def __init__(self, responses=None, error=None, model="fake-model"):
        self.responses = list(responses or [])
        self.error = error
        self.model = model
        self.calls = []

    def complete(self, prompt, *, temperature, max_tokens, timeout):
        self.calls.append(
            {"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens, "timeout": timeout}
        )
        if self.error is not None:
            raise self.error
        text = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return Completion(text=text, model=self.model)

    def test_connection(self):
        if self.error is not None:
            return {"success": False, "message": str(self.error)}
        return {"success": True, "models": [self.model]}


@pytest.fixture
def fake_llm():
    return FakeLLMClient


@pytest.fixture
def unreachable_llm():
    return FakeLLMClient(error=LLMError("Ollama request failed: connection refused"))


# ---------------------------------------------------------------------------
# OCR
# ---------------------------------------------------------------------------

class FakeWorkerFactory:
    """
    Context-manager factory yielding one recognizer per unit. Results are
    consumed in order; every acquired worker is counted and must be released.
    """

    def __init__(self, results):
        self.results = list(results)
        self.acquired = 0
        self.released = 0
        self.seen_paths = []

    @contextmanager
    def __call__(self, language):
        self.acquired += 1
        factory = self

        class _Worker:
            def recognize(self, image_path):
                factory.seen_paths.append(Path(image_path))
                result = factory.results.pop(0)
                if isinstance(result, Exception):
                    raise result
                return result

        try:
            yield _Worker()
        finally:
            self.released += 1


@pytest.fixture
def ocr_root(tmp_path):
    root = tmp_path / "ocr"
    root.mkdir()
    return root


@pytest.fixture
def make_ocr_runner(ocr_root):
    def _make(results):
        factory = FakeWorkerFactory(results)
        return OcrRunner(worker_factory=factory, dpi=36, max_pages=2, tmp_root=ocr_root), factory
    return _make


# ---------------------------------------------------------------------------
# Fixture documents
# ---------------------------------------------------------------------------

@pytest.fixture
def make_text_pdf(tmp_path):
    def _make(text, name="resume.pdf"):
        path = tmp_path / name
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=11)
        doc.save(str(path))
        doc.close()
        return path
    return _make


@pytest.fixture
def make_blank_pdf(tmp_path):
    def _make(pages=1, name="scanned.pdf"):
        path = tmp_path / name
        doc = fitz.open()
        for _ in range(pages):
            doc.new_page()
        doc.save(str(path))
        doc.close()
        return path
    return _make


@pytest.fixture
def make_png(tmp_path):
    def _make(name="scan.png", size=(240, 120)):
        path = tmp_path / name
        Image.new("RGB", size, "white").save(path)
        return path
    return _make


@pytest.fixture
def make_docx(tmp_path):
    def _make(paragraphs, name="resume.docx", table_rows=None, images=None):
        path = tmp_path / name
        document = Document()
        for para in paragraphs:
            document.add_paragraph(para)
        if table_rows:
            table = document.add_table(rows=0, cols=len(table_rows[0]))
            for row in table_rows:
                cells = table.add_row().cells
                for cell, value in zip(cells, row):
                    cell.text = value
        for image in images or []:
            document.add_picture(str(image))
        document.save(str(path))
        return path
    return _make


@pytest.fixture
def jane_doe_text():
    return JANE_DOE_TEXT


@pytest.fixture
def jane_doe_response():
    return JANE_DOE_RESPONSE
