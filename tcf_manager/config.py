"""
TCF Manager — Centralized configuration.

Loads all settings from .env. Nothing here is mandatory: a missing
LLM key only disables report analysis, it never stops the app.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from tcf_manager/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

SUPPORTED_LANGUAGES = ("en", "fa")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Storage
    DATABASE_PATH: str = "data/tcf_manager.db"
    STORAGE_QUOTA_BYTES: int = 5_000_000   # 0 → unlimited

    # Forms
    DRAFT_DEBOUNCE_SECONDS: float = 0.5

    # UI language used when none has been stored yet
    DEFAULT_LANGUAGE: str = "en"

    # LLM — provider-agnostic (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""

    @field_validator("STORAGE_QUOTA_BYTES", mode="before")
    @classmethod
    def parse_quota(cls, v: str | int) -> int:
        if isinstance(v, str) and not v.strip():
            return 0
        return max(int(v), 0)

    @field_validator("DRAFT_DEBOUNCE_SECONDS", mode="before")
    @classmethod
    def parse_delay(cls, v: str | float) -> float:
        return float(v)

    @field_validator("DEFAULT_LANGUAGE", mode="before")
    @classmethod
    def parse_language(cls, v: str) -> str:
        v = (v or "").strip().lower()
        return v if v in SUPPORTED_LANGUAGES else "en"

    @property
    def llm_configured(self) -> bool:
        key = self.LLM_API_KEY.strip()
        return bool(key) and not key.startswith("your-")


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/tcf_manager.db"),
        STORAGE_QUOTA_BYTES=os.getenv("STORAGE_QUOTA_BYTES", "5000000"),
        DRAFT_DEBOUNCE_SECONDS=os.getenv("DRAFT_DEBOUNCE_SECONDS", "0.5"),
        DEFAULT_LANGUAGE=os.getenv("DEFAULT_LANGUAGE", "en"),
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
    )


# Singleton — imported by all other modules as:
#   from tcf_manager.config import settings
settings = _load_settings()
