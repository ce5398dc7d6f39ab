from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "SkillSpark Interview API"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]
    frontend_url: str = "http://localhost:5173"

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_transcribe_model: str = "whisper-1"
    evaluation_temperature: float = 0.3
    evaluation_max_tokens: int = 800

    database_url: str = "sqlite:///./skillspark.db"
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "no-reply@skillspark.dev"
    company_name: str = "SkillSpark"

    question_cache_ttl_seconds: int = 600

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


settings = Settings()
