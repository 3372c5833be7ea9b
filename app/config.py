# app/config.py
"""
Application settings.

All values can be overridden through environment variables or a `.env`
file in the working directory, e.g. `ANTHROPIC_API_KEY=...`,
`WINDOW_SIZE=8`, `ALLOWED_ORIGINS='["https://chat.example.com"]'`.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.completion import DEFAULT_MAX_TOKENS, DEFAULT_MODEL
from app.context_window import DEFAULT_WINDOW_SIZE
from app.prompt import DEFAULT_SYSTEM_PROMPT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Completion provider
    anthropic_api_key: Optional[str] = Field(default=None, description="Provider API credential")
    anthropic_model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    provider_timeout: float = Field(default=30.0, gt=0, description="Seconds before a provider call is abandoned")

    # Conversation
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    window_size: int = Field(default=DEFAULT_WINDOW_SIZE, ge=0)

    # Storage
    store_path: str = Field(default="sessions.db", description="SQLite file holding the session documents")

    # HTTP
    allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    host: str = "0.0.0.0"
    port: int = 5000

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
