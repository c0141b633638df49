"""API configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://propanehub:propanehub@db:5432/propanehub"
    DB_ECHO: bool = False

    # Empty REDIS_URL disables the active-zone cache
    REDIS_URL: str = "redis://redis:6379/0"
    ZONE_CACHE_TTL_SEC: int = 60

    TELEGRAM_BOT_TOKEN: str = ""
    ADMIN_TELEGRAM_ID: str = ""

    CURRENCY: str = "IQD"
    DRIVER_COMMISSION_PCT: float = 0.10

    # Reject self-intersecting zone polygons on save
    ENFORCE_SIMPLE_POLYGONS: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "text" or "json"
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "allow"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
