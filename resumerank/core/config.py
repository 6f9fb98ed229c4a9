from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "ResumeRank AI"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    # Shared secret for server-to-server calls (analysis worker -> API)
    SERVICE_TOKEN: str = "change-me-service-token"

    DATABASE_URL: str = "sqlite+aiosqlite:///./resumerank.db"
    REDIS_URL: Optional[str] = None
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    SENDGRID_API_KEY: Optional[str] = None
    NOTIFICATION_FROM_EMAIL: str = "notifications@resumerank.ai"

    STORAGE_BACKEND: str = "local"
    STORAGE_LOCAL_DIR: str = "./storage"
    AWS_S3_BUCKET: Optional[str] = None
    AWS_REGION: Optional[str] = None

    BROADCAST_TIMEOUT_SECONDS: float = 3.0

    MAX_RESUME_SIZE_BYTES: int = 10 * 1024 * 1024
    DEFAULT_AI_CREDITS: int = 100
    MAX_REANALYZE_BATCH: int = 50

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
