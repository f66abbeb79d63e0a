"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "PRD Test Case Automation"
    debug: bool = True
    mock_mode: bool = True  # When True, the deterministic mock chat client is used

    # ── LLM ──────────────────────────────────────────────
    llm_provider: str = "groq"
    groq_api_key: str = ""
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000

    # ── Document Store ───────────────────────────────────
    document_store: str = "memory"  # "memory" | "mongo"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "prd_automation"

    # ── File Storage ─────────────────────────────────────
    local_storage_path: str = "./storage/documents"

    # ── Refinement Loop ──────────────────────────────────
    loop_max_iterations: int = 20
    loop_pause_seconds: float = 0.1

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
