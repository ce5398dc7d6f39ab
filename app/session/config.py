from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SESSION_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_base_url: str = "http://localhost:8000/api/v1"
    api_token: Optional[str] = None
    request_timeout_seconds: float = 60.0

    question_seconds: int = 120
    warning_at_seconds: int = 30
    grace_seconds: int = 5

    progress_dir: str = ".interview-progress"

    # browser-style live transcript captured alongside the recording
    live_transcription_enabled: bool = True
    # hosted speech-to-text when no live transcript is available
    hosted_transcription_enabled: bool = True
