# resume_processor/core/config.py
from __future__ import annotations
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field

# Resolve the .env alongside the backend package root (adjust if your layout differs)
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
BACKEND_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):

    # --- Database ---
    DATABASE_URL: str = Field(..., description="Full SQLAlchemy connection URL (e.g., postgresql+psycopg://...)")

    # --- App info ---
    APP_NAME: str = Field(default="Resume Processor Backend")
    LOG_LEVEL: str = Field(default="INFO")

    # --- Language model ---
    LLM_PROVIDER: str | None = Field(default=None, description="'ollama' or 'openai'; inferred from the model settings when unset")
    OLLAMA_BASE_URL: str = Field(default="http://localhost:11434", description="Base URL of local Ollama server")
    LLM_CHAT_MODEL: str | None = Field(default=None, description="Ollama model used for structured extraction")
    OPENAI_API_KEY: str | None = Field(default=None, description="API key for OpenAI (or an OpenAI-compatible service)")
    OPENAI_MODEL: str | None = Field(default=None, description="OpenAI model for chat/completions")
    OPENAI_BASE_URL: str | None = Field(default=None, description="Override for OpenAI-compatible endpoints (e.g., Groq)")
    LLM_TEMPERATURE: float = Field(default=0.1, ge=0.0, le=2.0)
    LLM_MAX_TOKENS: int = Field(default=4096, description="Completion token cap for structured extraction")
    LLM_TIMEOUT_S: int = Field(default=30)
    SUMMARY_TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)
    SUMMARY_MAX_TOKENS: int = Field(default=200)

    # --- OCR ---
    OCR_LANGUAGE: str = Field(default="eng")
    OCR_DPI: int = Field(default=300)
    OCR_MAX_PAGES: int = Field(default=2, description="Only the first pages of image-based PDFs are recognized")
    TESSERACT_CMD: str | None = Field(default=None, description="Path to the tesseract binary when it is not on PATH")

    # --- File handling ---
    UPLOADS_DIR: Path = Field(default=BACKEND_DIR / "data" / "uploads")
    TEMP_DIR: Path = Field(default=BACKEND_DIR / "data" / "uploads" / "temp")
    PROCESSED_DIR: Path = Field(default=BACKEND_DIR / "data" / "uploads" / "processed")
    MAX_FILE_SIZE: int = Field(default=10 * 1024 * 1024)
    ALLOWED_FILE_TYPES: str = Field(default="pdf,docx,doc,txt")

    # --- Pipeline ---
    GENERATE_CANDIDATE_SUMMARY: bool = False
    EXTRACTION_SCHEMA_VERSION: int = 1

    class Config:
        env_file = str(ENV_PATH)
        case_sensitive = True

    @property
    def allowed_file_types(self) -> set[str]:
        return {t.strip().lower() for t in self.ALLOWED_FILE_TYPES.split(",") if t.strip()}

    @property
    def llm_provider_effective(self) -> str:
        """
        Prefer LLM_PROVIDER; otherwise an Ollama model wins over an OpenAI model,
        and with nothing configured we assume a local Ollama.
        """
        if self.LLM_PROVIDER:
            return self.LLM_PROVIDER.lower()
        if self.LLM_CHAT_MODEL:
            return "ollama"
        if self.OPENAI_MODEL:
            return "openai"
        return "ollama"


settings = Settings()
