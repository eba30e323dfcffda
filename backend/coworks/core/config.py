from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global settings for the CoWorks backend.
    Values are read from the environment and from a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project
    project_name: str = "CoWorks API"
    api_v1_str: str = "/api/v1"
    debug: bool = False

    # Security / JWT
    secret_key: str = "changeme"
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # Database
    database_url: str = "sqlite:///./dev.db"

    # E-mail (SMTP)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: Optional[str] = None
    smtp_starttls: bool = True
    mail_subject_prefix: str = "[CoWorks]"

    # Public URLs (links sent by e-mail)
    public_base_url: str = "http://localhost:8000"
    public_app_url: str = "http://localhost:5173"
    allowed_origins: List[str] = []

    # Signing links
    signing_token_ttl_hours: int = 24 * 7

    # Deadline reminders
    deadline_reminder_hours: int = 24

    # Identity resolution
    auto_create_users: bool = True
    elevated_profiles: List[str] = ["admin", "staff"]

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def resolved_public_app_url(self) -> str:
        """Base URL used in e-mails and signing links."""
        base = (self.public_app_url or "").strip()
        if base:
            return base.rstrip("/")
        return (self.public_base_url or "").rstrip("/")

    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_sender)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
