"""
settings.py — Application settings.

Values come from the environment; a local .env file is loaded first so keys
do not have to be exported by hand. Real environment variables win over .env.
"""

import os
from pathlib import Path
from typing import Optional, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv(dotenv_path=Path(__file__).parent / ".env", override=False)


class AppSettings(BaseModel):
    active_provider: Literal["google", "mistral", "ollama"] = Field(
        default_factory=lambda: os.environ.get("MIGRATOR_PROVIDER", "google")
    )
    active_model: str = Field(default_factory=lambda: os.environ.get("MIGRATOR_MODEL", "gemini-3-flash-preview"))

    gemini_api_key: Optional[str] = Field(
        default_factory=lambda: os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
    )
    gemini_base_url: str = Field(
        default_factory=lambda: os.environ.get("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
    )

    mistral_api_key: str = Field(default_factory=lambda: os.environ.get("MISTRAL_API_KEY", ""))
    mistral_endpoint: str = Field(default_factory=lambda: os.environ.get("MISTRAL_ENDPOINT", "https://api.mistral.ai/v1"))

    ollama_endpoint: str = Field(default_factory=lambda: os.environ.get("OLLAMA_ENDPOINT", "http://localhost:11434"))

    # Pause between section translations to stay under provider rate limits
    section_delay: float = Field(default_factory=lambda: float(os.environ.get("MIGRATOR_SECTION_DELAY", "1.0")))


def get_settings() -> AppSettings:
    return AppSettings()
