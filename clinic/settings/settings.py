from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL


class Settings(BaseSettings):
    """Settings for the clinic jobs service."""

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "clinic"
    DB_PASS: str = Field(default="clinic")
    DB_BASE: str = "clinic"
    DB_ECHO: bool = False

    # Email delivery
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = Field(default="")
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 30.0
    EMAIL_FROM_ADDRESS: str = "noreply@clinic.local"
    EMAIL_FROM_NAME: str = "Clinic"
    EMAIL_FALLBACK_ADDRESS: str = Field(
        default="noreply@clinic.local",
        description="Recipient used when a patient has no usable email address",
    )
    CLINIC_NAME: str = "Clinic"

    # Background jobs
    JOB_POLL_INTERVAL_SECONDS: float = Field(
        default=5.0,
        gt=0,
        description="How often delayed jobs are checked for eligibility",
    )
    JOB_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=3,
        description="Executions of a failing job before it is dropped",
    )
    JOB_BACKOFF_BASE_SECONDS: float = Field(default=30.0, ge=0)
    JOB_BACKOFF_MAX_SECONDS: float = Field(default=600.0, ge=0)
    DEFAULT_WORKERS: int = Field(default=1, ge=1)
    NOTIFICATIONS_WORKERS: int = Field(default=2, ge=1)
    MAINTENANCE_WORKERS: int = Field(default=1, ge=1)
    SWEEP_INTERVAL_SECONDS: float = Field(
        default=3600.0,
        gt=0,
        description="Cadence of the past appointments status sweep",
    )

    @property
    def db_url(self) -> URL:
        """
        Assemble database URL from settings.

        :return: database URL.
        """
        return URL.build(
            scheme="postgresql+asyncpg",
            host=self.DB_HOST,
            port=self.DB_PORT,
            user=self.DB_USER,
            password=self.DB_PASS,
            path=f"/{self.DB_BASE}",
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
