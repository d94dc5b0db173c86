"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Note: get_settings() is cached. Tests that change the environment
    must call get_settings.cache_clear() before the app modules import it.
    """

    # Database settings
    DATABASE_URL: str = "postgresql://localhost/storehub_dev"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Security settings
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days, no refresh
    BCRYPT_ROUNDS: int = 12

    # Redis for rate limiting and failed-login counters
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Tenant routing
    # Requests to <subdomain>.<BASE_DOMAIN> resolve the tenant by subdomain
    BASE_DOMAIN: str = "storehub.local"
    RESERVED_SUBDOMAINS: list[str] = ["www", "api", "app", "admin"]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 120
    RATE_LIMIT_BURST: int = 20
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCKOUT_SECONDS: int = 900

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: list[str] = ["image/png", "image/jpeg", "image/webp", "image/svg+xml"]
    MAX_CSV_BYTES: int = 2 * 1024 * 1024

    # Outbound integrations (unset gateway = message logged as skipped)
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    SMS_GATEWAY_URL: str = ""
    WHATSAPP_GATEWAY_URL: str = ""
    PUSH_GATEWAY_URL: str = ""

    # Orders and loyalty
    AUTO_ACCEPT_SECONDS: int = 300
    LOYALTY_SPEND_PER_POINT: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only instantiate settings once.
    """
    return Settings()
