from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
    return bool(v)


class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'skuld_user'
    POSTGRES_PASSWORD: str = 'skuld_pass'
    POSTGRES_DB: str = 'skuld_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* settings when set

    # Redis settings
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # MinIO settings
    MINIO_HOST: str = 'minio'
    MINIO_PORT: int = 9000
    MINIO_ACCESS_KEY: str = 'minioadmin'
    MINIO_SECRET_KEY: str = 'minioadmin'
    MINIO_BUCKET_NAME: str = 'skuld'
    MINIO_USE_SSL: bool = False

    # JWT settings (tokens are issued by the identity provider)
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'

    # File upload limits
    MAX_FILE_SIZE: int = 5 * 1024 * 1024  # 5MB
    MAX_LOGO_SIZE: int = 2 * 1024 * 1024  # 2MB
    ALLOWED_FILE_TYPES: list = ["image/jpeg", "image/png", "image/webp", "application/pdf"]
    ALLOWED_LOGO_TYPES: list = ["image/jpeg", "image/png", "image/webp"]
    MAX_ATTACHMENTS_PER_TRANSACTION: int = 10

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Background PDF backfill
    PDF_BACKFILL_BATCH_SIZE: int = 100

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SQL_ECHO: bool = False

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def minio_endpoint(self) -> str:
        return f"{self.MINIO_HOST}:{self.MINIO_PORT}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        return _parse_bool(v)

    @field_validator("MINIO_USE_SSL", mode="before")
    @classmethod
    def parse_ssl(cls, v):
        return _parse_bool(v)

    @field_validator("SQL_ECHO", mode="before")
    @classmethod
    def parse_sql_echo(cls, v):
        return _parse_bool(v)

settings = Settings()
