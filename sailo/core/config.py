from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COVER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1488646953014-85cb44e25828?w=800&q=80"
)


class Settings(BaseSettings):
    # 後端 REST API (前端時代的 NEXT_PUBLIC_API_URL 也可以沿用)
    backend_api_url: str = Field(
        "http://localhost:5000",
        validation_alias=AliasChoices("BACKEND_API_URL", "NEXT_PUBLIC_API_URL"),
    )
    backend_timeout_seconds: float = 10.0

    session_cookie_name: str = "sailo_sid"
    session_cookie_secure: bool = False
    session_ttl_minutes: int = 120

    token_refresh_minutes: int = 10
    otp_ttl_seconds: int = 600          # 10 分鐘
    modal_transition_ms: int = 200      # 對話框關閉動畫
    feed_page_size: int = 10

    default_cover_image_url: str = DEFAULT_COVER_IMAGE_URL
    max_upload_bytes: int = 5 * 1024 * 1024

    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_config():
    return Settings()
