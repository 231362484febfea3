import logging
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv('.env.local', override=False)

logger = logging.getLogger(__name__)

#=========================
#CONFIG
#=========================
class Settings(BaseSettings):
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_VERSION: str = "v1beta"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com"
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_VISION_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT: float = 60.0
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000,http://127.0.0.1:8000"
    REQUIRE_HTTPS: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def model_url(self, model: str) -> str:
        return (
            f"{self.GEMINI_BASE_URL.rstrip('/')}/{self.GEMINI_API_VERSION}/models/"
            f"{model}:generateContent"
        )


def get_settings() -> Settings:
    settings = Settings()
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set - analysis features will be unavailable")
    return settings
