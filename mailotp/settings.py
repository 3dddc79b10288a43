from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: int = 3
    redis_url: str = "redis://redis:6379/0"
    redis_socket_timeout_seconds: float = 2.0
    smtp_base_url: str = "http://smtp-mock:8025"
    smtp_send_path: str = "/send"
    challenge_store: Literal["redis", "memory"] = "redis"

    # Security / policies
    bcrypt_rounds: int = 12
    code_length: int = 6
    code_ttl_seconds: int = 300
    code_attempts: int = 5
    resend_cooldown_seconds: int = 30
    code_pepper: str = ""

    # Delivery
    delivery_timeout_seconds: float = 5.0
    email_subject: str = "Your verification code"
    email_from: str = ""

    # Store
    store_lock_timeout_seconds: float = 5.0
    janitor_interval_seconds: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
