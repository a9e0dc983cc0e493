import pytest
import requests

from resume_processor.services.common import llm_client
from resume_processor.services.common.llm_client import LLMClient, LLMError, load_prompt


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload or {}
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self._payload


@pytest.fixture
def ollama():
    return LLMClient("ollama", "llama3.2", base_url="http://ollama.test:11434/")


def test_ollama_completion_payload(monkeypatch, ollama):
    sent = {}

    def fake_post(url, json, timeout):
        sent.update(url=url, json=json, timeout=timeout)
        return FakeResponse({"model": "llama3.2:latest", "message": {"content": "  {\"a\": 1}  "},
                             "prompt_eval_count": 12, "eval_count": 5})

    monkeypatch.setattr(llm_client.requests, "post", fake_post)

    completion = ollama.complete("hello", temperature=0.2, max_tokens=99, timeout=7)

    assert completion.text == '{"a": 1}'
    assert completion.model == "llama3.2:latest"
    assert completion.usage == {"prompt_tokens": 12, "completion_tokens": 5}
    assert sent["url"] == "http://ollama.test:11434/api/chat"
    assert sent["timeout"] == 7
    assert sent["json"]["stream"] is False
    assert sent["json"]["messages"] == [{"role": "user", "content": "hello"}]
    assert sent["json"]["options"]["temperature"] == 0.2
    assert sent["json"]["options"]["num_predict"] == 99


def test_ollama_transport_error_is_wrapped(monkeypatch, ollama):
    def fake_post(url, json, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(llm_client.requests, "post", fake_post)

    with pytest.raises(LLMError, match="connection refused"):
        ollama.complete("hello")


def test_ollama_http_error_is_wrapped(monkeypatch, ollama):
    monkeypatch.setattr(llm_client.requests, "post", lambda url, json, timeout: FakeResponse(status_code=500))

    with pytest.raises(LLMError):
        ollama.complete("hello")


@pytest.mark.parametrize(
    "body",
    [
        {"message": {"content": "   "}},
        {"message": {"content": None}},
        {"message": None},
        {"done": True},
    ],
)
def test_ollama_empty_content_is_an_error(monkeypatch, ollama, body):
    monkeypatch.setattr(llm_client.requests, "post", lambda url, json, timeout: FakeResponse(body))

    with pytest.raises(LLMError, match="empty response"):
        ollama.complete("hello")


def test_ollama_non_object_body_is_an_error(monkeypatch, ollama):
    monkeypatch.setattr(llm_client.requests, "post", lambda url, json, timeout: FakeResponse(["hello"]))

    with pytest.raises(LLMError, match="malformed"):
        ollama.complete("hello")


def test_openai_without_key_is_an_llm_error(monkeypatch):
    monkeypatch.setattr(llm_client.settings, "OPENAI_API_KEY", None)
    client = LLMClient("openai", "gpt-4o-mini")

    with pytest.raises(LLMError, match="OPENAI_API_KEY"):
        client.complete("hello")


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError, match="Unknown provider"):
        LLMClient("carrier-pigeon")


def test_connection_probe(monkeypatch, ollama):
    monkeypatch.setattr(
        llm_client.requests, "get",
        lambda url, timeout: FakeResponse({"models": [{"name": "llama3.2:latest"}, {"name": "qwen2.5"}]}),
    )

    result = ollama.test_connection()

    assert result["success"] is True
    assert result["provider"] == "ollama"
    assert result["models"] == ["llama3.2:latest", "qwen2.5"]


def test_connection_probe_reports_failure(monkeypatch, ollama):
    def fake_get(url, timeout):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(llm_client.requests, "get", fake_get)

    result = ollama.test_connection()

    assert result["success"] is False
    assert "timed out" in result["message"]


def test_provider_inferred_from_settings(monkeypatch):
    monkeypatch.setattr(llm_client.settings, "LLM_PROVIDER", None)
    monkeypatch.setattr(llm_client.settings, "LLM_CHAT_MODEL", None)
    monkeypatch.setattr(llm_client.settings, "OPENAI_MODEL", "gpt-4o")

    client = LLMClient()

    assert client.provider == "openai"
    assert client.model == "gpt-4o"


def test_load_prompt_falls_back_to_basename(tmp_path, monkeypatch):
    (tmp_path / "only_here.prompt.txt").write_text("PROMPT BODY", encoding="utf-8")
    monkeypatch.setattr(llm_client, "PROMPTS_DIR", tmp_path)

    assert load_prompt("nested/only_here.prompt.txt") == "PROMPT BODY"
    with pytest.raises(FileNotFoundError):
        load_prompt("missing.prompt.txt")
