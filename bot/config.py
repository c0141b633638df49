"""PropaneHub bot settings, read from the environment (or .env)."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TELEGRAM_BOT_TOKEN: str = ""
    LOG_LEVEL: str = "INFO"

    # Backend
    API_BASE_URL: str = "http://api:8000"
    API_TIMEOUT_SECONDS: float = 10.0

    # Display
    CURRENCY: str = "IQD"

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
