"""Application settings."""
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"
    secret_key: str = "dev-secret-change-in-production"
    debug: bool = True
    public_base_url: str | None = None

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "quillpress"
    postgres_user: str = "quillpress"
    postgres_password: str = "changeme"

    redis_host: str = "localhost"
    redis_port: int = 6379

    staff_default_email: str = "owner@localhost"
    staff_default_password: str = "changeme"

    jwt_secret: str = "your-jwt-secret-min-32-chars"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    rq_email_queue_name: str = "email"
    rq_default_queue_name: str = "default"
    email_job_timeout_seconds: int = 3600
    email_analytics_interval_seconds: int = 300

    bulk_email_batch_size: int = 1000
    email_from_address: str = "noreply@localhost"
    email_support_address: str = "support@localhost"
    labs_email_card_segments: bool = False

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_secure: str = "tls"  # tls|ssl|none


@lru_cache
def get_settings() -> Settings:
    return Settings()
