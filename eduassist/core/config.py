import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings


def _default_upload_dir() -> str:
    """Uploads land in the system temp dir unless UPLOAD_DIR is set."""
    return str(Path(tempfile.gettempdir()) / "eduassist-uploads")


class Settings(BaseSettings):
    # App
    app_name: str = "EduAssist"
    environment: str = "development"  # development, production
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True  # Enable file logging

    # CORS (comma-separated origins, empty = local dev defaults)
    allowed_origins: str = ""
    frontend_url: str = "http://localhost:3000"

    # Anthropic Claude
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    ai_max_tokens: int = 2000
    ai_temperature: float = 0.7
    ai_quiz_temperature: float = 0.5  # quizzes sample cooler than summaries
    ai_timeout_seconds: float = 30.0

    # Uploads
    upload_dir: str = _default_upload_dir()
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
