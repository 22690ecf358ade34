"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass
class Config:
    llm_provider: str = "openai"
    llm_model: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    llm_timeout: float = 30.0  # seconds per ranking call

    email_backend: str = "console"
    email_from: str = "scheduler@example.com"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    sendgrid_api_key: str = ""

    db_path: Path = field(default_factory=lambda: Path("slotmatch.db"))

    jwt_secret: str = "slotmatch-dev-secret-change-me"
    jwt_expire_hours: int = 48

    def __post_init__(self) -> None:
        if not self.llm_model:
            self.llm_model = {
                "openai": "gpt-4",
                "anthropic": "claude-sonnet-4-20250514",
                "gemini": "gemini-1.5-pro",
            }.get(self.llm_provider, "gpt-4")


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from .env file and environment variables."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return Config(
        llm_provider=os.getenv("LLM_PROVIDER", "openai"),
        llm_model=os.getenv("LLM_MODEL", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        llm_timeout=float(os.getenv("LLM_TIMEOUT", "30")),
        email_backend=os.getenv("EMAIL_BACKEND", "console"),
        email_from=os.getenv("EMAIL_FROM", "scheduler@example.com"),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_username=os.getenv("SMTP_USERNAME", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
        db_path=Path(os.getenv("DB_PATH", "slotmatch.db")),
        jwt_secret=os.getenv("JWT_SECRET", "slotmatch-dev-secret-change-me"),
        jwt_expire_hours=int(os.getenv("JWT_EXPIRE_HOURS", "48")),
    )
