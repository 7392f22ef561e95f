from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── AI Providers ──────────────────────────────────────────────────────────
    AI_PROVIDER: str = "hybrid"

    @field_validator("AI_PROVIDER")
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        allowed = {"hybrid", "gemini"}
        if v.lower() not in allowed:
            raise ValueError(f"AI_PROVIDER must be one of {allowed}, got '{v}'")
        return v.lower()

    # Google (Gemini - multimodal quiz generation + diagrams)
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"
    GEMINI_TEMPERATURE: float = 0.5

    # Groq (Llama 3 - text-only failover for PDFs with extractable text)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"

    # ── Limits ────────────────────────────────────────────────────────────────
    MAX_FILE_SIZE_MB: int = 20
    SOURCE_TEXT_MAX_CHARS: int = 40000  # extracted PDF text handed to the failover
    AI_TIMEOUT_SECONDS: int = 300  # 5-minute timeout for quiz generation
    IMAGE_TIMEOUT_SECONDS: int = 120
    GENERATION_MAX_ATTEMPTS: int = 2

    # ── Export ────────────────────────────────────────────────────────────────
    EXPORT_LAYOUT_DELAY_SECONDS: float = 0.3
    EXPORT_IMAGE_MAX_HEIGHT: int = 250

    # ── Core ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: List[str] = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
