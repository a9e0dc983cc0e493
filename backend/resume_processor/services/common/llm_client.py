# resume_processor/services/common/llm_client.py
"""Text-completion client over Ollama or an OpenAI-compatible API, plus prompt loading.
Every transport, HTTP, SDK and empty-response failure surfaces as LLMError."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from openai import OpenAI, OpenAIError

from resume_processor.core.config import settings

logger = logging.getLogger("ai.llm")

PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"

# Default Ollama chat options; temperature / num_predict are set per call
DEFAULT_CHAT_OPTIONS: Dict[str, Any] = {
    "seed": 7,
    "repeat_penalty": 1.05,
    "num_ctx": 8192,
}


class LLMError(RuntimeError):
    """The completion service was unreachable, timed out, refused the request or returned nothing."""


@dataclass(frozen=True)
class Completion:
    text: str
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)


def load_prompt(relative_path: str) -> str:
    """
    Load a prompt file from resume_processor/prompts/<relative_path>.
    Falls back to the basename directly under prompts/.
    """
    path = PROMPTS_DIR / relative_path
    if path.exists():
        text = path.read_text(encoding="utf-8")
        logger.debug("Loaded prompt: %s (%d chars)", relative_path, len(text))
        return text
    alt = PROMPTS_DIR / Path(relative_path).name
    if alt.exists():
        text = alt.read_text(encoding="utf-8")
        logger.debug("Loaded prompt by basename fallback: %s (%d chars)", alt.name, len(text))
        return text
    raise FileNotFoundError(f"Prompt file not found. Tried: {path} and {alt}")


class LLMClient:
    """
    Single-prompt completion against one provider.
      - ollama: POST {OLLAMA_BASE_URL}/api/chat (non-streaming)
      - openai: chat.completions via the SDK (OPENAI_BASE_URL for compatible services such as Groq)
    Nothing is contacted on construction.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.provider = (provider or settings.llm_provider_effective).lower()
        if self.provider == "ollama":
            self.model = model or settings.LLM_CHAT_MODEL or "llama3.2"
            self.base_url = (base_url or settings.OLLAMA_BASE_URL or "").rstrip("/")
            if not self.base_url:
                raise ValueError("OLLAMA_BASE_URL is not set. Please add it to your environment or .env file.")
        elif self.provider == "openai":
            self.model = model or settings.OPENAI_MODEL or "gpt-4o-mini"
            self.base_url = base_url or settings.OPENAI_BASE_URL
            self._api_key = api_key or settings.OPENAI_API_KEY
            self._openai: Optional[OpenAI] = None
        else:
            raise ValueError(f"Unknown provider: {self.provider}")
        logger.info("LLM client configured: provider=%s model=%s", self.provider, self.model)

    def complete(
        self,
        prompt: str,
        *,
        temperature: float = settings.LLM_TEMPERATURE,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        timeout: float = settings.LLM_TIMEOUT_S,
    ) -> Completion:
        if self.provider == "ollama":
            return self._complete_ollama(prompt, temperature, max_tokens, timeout)
        return self._complete_openai(prompt, temperature, max_tokens, timeout)

    def test_connection(self) -> Dict[str, Any]:
        """Cheap round-trip for health checks. Reports failures, never raises."""
        try:
            if self.provider == "ollama":
                response = requests.get(f"{self.base_url}/api/tags", timeout=5)
                response.raise_for_status()
                models = [m.get("name") for m in response.json().get("models", [])]
            else:
                models = [m.id for m in self._get_openai().models.list().data]
            return {"success": True, "provider": self.provider, "model": self.model, "models": models}
        except (requests.RequestException, OpenAIError, ValueError) as e:
            logger.warning("LLM connection test failed (%s): %s", self.provider, e)
            return {"success": False, "provider": self.provider, "model": self.model, "message": str(e)}

    # ===== Ollama =====
    def _complete_ollama(self, prompt: str, temperature: float, max_tokens: int, timeout: float) -> Completion:
        options = DEFAULT_CHAT_OPTIONS.copy()
        options.update({"temperature": temperature, "num_predict": max_tokens})
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": options,
            "keep_alive": "30m",
        }
        try:
            response = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise LLMError(f"Ollama request failed: {e}") from e

        if not isinstance(body, dict):
            raise LLMError("Ollama returned a malformed response")
        message = body.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        content = content.strip() if isinstance(content, str) else ""
        if not content:
            raise LLMError("Ollama returned an empty response")
        usage = {
            "prompt_tokens": body.get("prompt_eval_count"),
            "completion_tokens": body.get("eval_count"),
        }
        logger.debug("Ollama completion received %d chars", len(content))
        return Completion(text=content, model=body.get("model") or self.model, usage=usage)

    # ===== OpenAI =====
    def _get_openai(self) -> OpenAI:
        if self._openai is None:
            if not self._api_key:
                raise ValueError("OPENAI_API_KEY is not set. Please add it to your environment or .env file.")
            self._openai = OpenAI(api_key=self._api_key, base_url=self.base_url)
            logger.info("OpenAI client initialized")
        return self._openai

    def _complete_openai(self, prompt: str, temperature: float, max_tokens: int, timeout: float) -> Completion:
        try:
            resp = self._get_openai().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except (OpenAIError, ValueError) as e:
            raise LLMError(f"OpenAI request failed: {e}") from e

        content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not content:
            raise LLMError("OpenAI returned an empty response")
        usage = resp.usage.model_dump() if resp.usage is not None else {}
        logger.debug("OpenAI completion received %d chars", len(content))
        return Completion(text=content, model=resp.model or self.model, usage=usage)


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    """Process-wide client built on first use from settings."""
    return LLMClient()
