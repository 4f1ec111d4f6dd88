# services/api/gallery_api/config.py

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"  # "production" hides stack traces

    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5  # pool_size + overflow = 10 connections max
    DB_CONNECT_TIMEOUT_SEC: int = 5
    DB_POOL_RECYCLE_SEC: int = 45

    JWT_SECRET: str
    JWT_EXPIRE_MIN: int = 60 * 24  # 1 day
    BCRYPT_ROUNDS: int = 10

    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    UPLOAD_DIR: str = "/data/uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    S3_BUCKET: str | None = None
    S3_PREFIX: str = "gallery-media"
    S3_PUBLIC_BASE_URL: str | None = None  # CDN in front of the bucket
    AWS_REGION: str | None = None
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    MAX_UPLOAD_MB: int = 10
    MAX_JSON_BODY_MB: int = 30

    CORS_ORIGIN: str = "*"

    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_FAIL_OPEN: bool = True
    RATE_LIMIT_WINDOW_SEC: int = 15 * 60
    LOGIN_RATE_LIMIT: int = 10
    UPLOAD_RATE_LIMIT: int = 50

    # Revoked tokens are purged by an in-process sweeper; 0 disables it
    # (run janitor_runner as a separate worker instead).
    REVOCATION_SWEEP_SECONDS: int = 15 * 60
    JANITOR_SLEEP_SECONDS: int = 6 * 60 * 60

    # Seeding (python -m gallery_api.seed_admin)
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str | None = None

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def max_upload_bytes(self) -> int:
        return int(self.MAX_UPLOAD_MB) * 1024 * 1024

@lru_cache
def get_settings() -> Settings:
    return Settings()
