from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from backend project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./clinic.db"
    database_ssl: bool = False  # hosted Postgres (e.g. Neon) needs this

    # JWT
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # Bootstrap admin (created on startup when both are set)
    admin_email: str = ""
    admin_password: str = ""

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Slot/booking business rules
    slot_duration_minutes: int = 30
    slot_capacity: int = 1
    admission_timeout_seconds: float = 10.0

    # Read path retries (connection failures only)
    storage_read_retries: int = 3
    storage_retry_backoff_seconds: float = 0.2

    # Booking listing
    default_per_page: int = 10
    max_per_page: int = 100

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Clinic"
    # Branding and contact in footer
    site_name: str = "Clinic"
    contact_email: str = ""
    contact_phone: str = ""
    contact_address: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
