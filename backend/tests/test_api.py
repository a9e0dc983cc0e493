import uuid

import pytest
from fastapi.testclient import TestClient

from resume_processor.api.deps import get_extractor, get_resume_processor
from resume_processor.core.config import settings
from resume_processor.db.base import get_db
from resume_processor.main import create_app
from resume_processor.services.common.llm_client import LLMError
from resume_processor.services.resumes.extraction_pipeline import ResumeExtractor
from resume_processor.services.resumes.ingestion_pipeline import ResumeProcessor


@pytest.fixture
def temp_dir(tmp_path, monkeypatch):
    path = tmp_path / "temp"
    monkeypatch.setattr(settings, "TEMP_DIR", path)
    return path


@pytest.fixture
def llm(fake_llm, jane_doe_response):
    return fake_llm([jane_doe_response])


@pytest.fixture
def client(session_factory, llm, temp_dir, tmp_path, make_ocr_runner):
    app = create_app()

    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_extractor():
        return ResumeExtractor(llm)

    def override_processor():
        db = session_factory()
        runner, _ = make_ocr_runner([])
        try:
            yield ResumeProcessor(db, extractor=ResumeExtractor(llm), ocr=runner, processed_dir=tmp_path / "processed")
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_extractor] = override_extractor
    app.dependency_overrides[get_resume_processor] = override_processor
    with TestClient(app) as c:
        yield c


def _upload(client, name, content, content_type="text/plain", **data):
    return client.post("/resumes/upload", files={"file": (name, content, content_type)}, data=data)


@pytest.fixture
def uploaded(client, jane_doe_text):
    response = _upload(client, "jane.txt", jane_doe_text.encode("utf-8"), uploaded_by="recruiter")
    assert response.status_code == 200
    return response.json()


class TestUpload:
    def test_text_resume_is_processed(self, uploaded, temp_dir):
        resume = uploaded["resume"]

        assert resume["status"] == "COMPLETED"
        assert resume["processing_stage"] == "DONE"
        assert resume["original_file_name"] == "jane.txt"
        assert resume["candidate_id"] == uploaded["candidate_id"]
        assert uploaded["used_fallback"] is False
        assert uploaded["extraction_method"] == "text"
        assert uploaded["quality"]["quality"] in {"excellent", "good", "fair", "poor"}
        assert resume["logs"][0]["step"] == "CANDIDATE_CREATION"
        assert resume["logs"][0]["status"] == "COMPLETED"
        # the temp copy was moved to the processed folder
        assert list(temp_dir.iterdir()) == []

    @pytest.mark.parametrize("name", ["photo.png", "resume.rtf", "noextension"])
    def test_disallowed_type_is_rejected(self, client, temp_dir, name):
        response = _upload(client, name, b"data", "application/octet-stream")

        assert response.status_code == 400
        assert not temp_dir.exists() or list(temp_dir.iterdir()) == []

    def test_empty_file_is_rejected(self, client, temp_dir):
        response = _upload(client, "empty.txt", b"")

        assert response.status_code == 400
        assert list(temp_dir.iterdir()) == []

    def test_oversized_file_is_rejected(self, client, temp_dir, monkeypatch):
        monkeypatch.setattr(settings, "MAX_FILE_SIZE", 16)

        response = _upload(client, "big.txt", b"x" * 17)

        assert response.status_code == 400
        assert list(temp_dir.iterdir()) == []

    def test_unreadable_document_returns_422(self, client, temp_dir):
        response = _upload(
            client, "broken.docx", b"not a zip archive",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )

        assert response.status_code == 422
        body = response.json()
        assert body["status"] == "FAILED"
        assert body["processing_stage"] == "TEXT_EXTRACTION_FAILED"
        assert body["error"]
        assert [log["status"] for log in body["logs"]] == ["FAILED", "STARTED"]
        assert list(temp_dir.iterdir()) == []


class TestResumeEndpoints:
    def test_status(self, client, uploaded):
        resume_id = uploaded["resume"]["id"]

        response = client.get(f"/resumes/{resume_id}/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["used_fallback"] is False
        assert len(body["logs"]) == 6

    def test_unknown_ids(self, client):
        assert client.get(f"/resumes/{uuid.uuid4()}/status").status_code == 404
        assert client.get(f"/resumes/{uuid.uuid4()}").status_code == 404
        assert client.delete(f"/resumes/{uuid.uuid4()}").status_code == 404
        assert client.get("/resumes/not-a-uuid").status_code == 422

    def test_list_and_detail(self, client, uploaded):
        listing = client.get("/resumes").json()
        assert listing["total"] == 1
        assert listing["items"][0]["id"] == uploaded["resume"]["id"]
        assert client.get("/resumes", params={"status": "FAILED"}).json()["total"] == 0

        detail = client.get(f"/resumes/{uploaded['resume']['id']}").json()
        assert detail["uploaded_by"] == "recruiter"
        assert detail["extracted_text"].startswith("Jane Doe")
        assert detail["metadata"]["structured_data"]["personal_info"]["name"] == "Jane Doe"
        assert detail["logs"][0]["status"] == "STARTED"

    def test_delete(self, client, uploaded):
        resume_id = uploaded["resume"]["id"]

        assert client.delete(f"/resumes/{resume_id}").status_code == 204
        assert client.get(f"/resumes/{resume_id}").status_code == 404
        # the candidate outlives the processing record
        assert client.get(f"/candidates/{uploaded['candidate_id']}").status_code == 200


class TestCandidateEndpoints:
    def test_search_by_comma_separated_skills(self, client, uploaded):
        body = client.get("/candidates", params={"skills": "python,rust"}).json()

        assert body["total"] == 1
        assert body["items"][0]["full_name"] == "Jane Doe"
        assert sorted(body["items"][0]["skills"]) == ["Python", "SQL"]

        assert client.get("/candidates", params={"skills": "rust"}).json()["total"] == 0
        assert client.get("/candidates", params={"min_experience": 5}).json()["total"] == 0

    def test_detail(self, client, uploaded):
        body = client.get(f"/candidates/{uploaded['candidate_id']}").json()

        assert body["full_name"] == "Jane Doe"
        assert body["years_experience"] == 2
        assert body["work_experience"][0]["company"] == "Acme Corp"
        assert {s["name"] for s in body["skills"]} == {"Python", "SQL"}
        assert body["resume_ids"] == [uploaded["resume"]["id"]]

    def test_unknown_candidate(self, client):
        assert client.get(f"/candidates/{uuid.uuid4()}").status_code == 404


class TestHealth:
    def test_app_health(self, client):
        body = client.get("/health").json()
        assert body == {"status": "ok", "app": settings.APP_NAME, "database": "ok"}

    def test_llm_health(self, client):
        assert client.get("/llm/health").json()["success"] is True

    def test_llm_prompt(self, client, llm):
        response = client.post("/llm/test", json={"prompt": "Say hi", "max_tokens": 32})

        assert response.status_code == 200
        body = response.json()
        assert body["prompt"] == "Say hi"
        assert body["model"] == "fake-model"
        assert body["provider"] == "fake"
        assert llm.calls[-1]["max_tokens"] == 32

    def test_llm_prompt_unreachable(self, client, llm):
        llm.error = LLMError("connection refused")

        response = client.post("/llm/test", json={"prompt": "Say hi"})

        assert response.status_code == 502
        assert "connection refused" in response.json()["detail"]

    def test_llm_prompt_validation(self, client):
        assert client.post("/llm/test", json={"prompt": ""}).status_code == 422
