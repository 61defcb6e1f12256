# src/cmscrm/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",            # auto-load .env (optional; process env wins)
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    APP_NAME: str = "CMSCRM Backend API"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"       # "development" | "production" | "test"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Database (DATABASE_URL wins over the individual parts)
    DATABASE_URL: Optional[str] = None
    DB_DRIVER: str = "postgresql+asyncpg"
    DB_USER: str = "cmscrm"
    DB_PASSWORD: str = "cmscrm"
    DB_HOST: str = "127.0.0.1"
    DB_PORT: int = 5432
    DB_NAME: str = "cmscrm"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_TIMEOUT: int = 30

    # JWT
    JWT_SECRET: str = "change-this-in-prod"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    JWT_LEEWAY_SECONDS: int = 30

    # HTTP
    CORS_ORIGINS: str = "http://localhost:5173"   # comma separated
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT: str = "100/15 minutes"
    LOGIN_RATE_LIMIT: str = "5/minute"

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 5 * 1024 * 1024   # bytes

    TIMEZONE: str = "UTC"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.strip().lower() == "development"

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or (
            f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
