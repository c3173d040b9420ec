from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ASSET_HEALTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Asset Health Service"
    API_PREFIX: str = "/internal/asset-health"

    # Database
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Batch processing
    BATCH_SIZE: int = 10
    ASSET_TIMEOUT_SECONDS: float = 30.0
    MAINTENANCE_HISTORY_LIMIT: int = 20

    # Alerts
    ALERT_RECIPIENT_ROLES: List[str] = ["hsse_manager"]
    ALERT_MAX_LISTED_ASSETS: int = 10
    NOTIFICATION_SERVICE_URL: Optional[str] = None
    NOTIFICATION_TIMEOUT_SECONDS: int = 10

    # Celery / scheduling
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    DAILY_RUN_HOUR: int = 2
    DAILY_RUN_MINUTE: int = 0

    # Run lock (prevents overlapping daily runs)
    REDIS_URL: str = "redis://localhost:6379/0"
    RUN_LOCK_ENABLED: bool = False
    RUN_LOCK_TIMEOUT_SECONDS: int = 3600

    # API
    REQUIRE_API_KEY: bool = False
    VALID_API_KEYS: List[str] = []

    # Metrics
    METRICS_ENABLED: bool = True

    @field_validator("BATCH_SIZE", "MAINTENANCE_HISTORY_LIMIT", "ALERT_MAX_LISTED_ASSETS")
    @classmethod
    def positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @model_validator(mode="after")
    def _derive_database_uri(self) -> "Settings":
        if self.SQLALCHEMY_DATABASE_URI:
            return self
        if self.POSTGRES_USER and self.POSTGRES_SERVER and self.POSTGRES_DB:
            safe_user = quote_plus(self.POSTGRES_USER)
            if self.POSTGRES_PASSWORD:
                creds = f"{safe_user}:{quote_plus(self.POSTGRES_PASSWORD)}"
            else:
                creds = safe_user
            self.SQLALCHEMY_DATABASE_URI = (
                f"postgresql://{creds}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        else:
            self.SQLALCHEMY_DATABASE_URI = "sqlite:///./asset_health.db"
        return self

    @property
    def broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL


settings = Settings()
