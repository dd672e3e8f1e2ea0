import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field


class Settings(BaseModel):
    TICKER_LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    TICKER_CACHE_BACKEND: Literal["none", "memory", "redis"] = "none"
    TICKER_REDIS_URL: str = "redis://localhost:6379/0"
    TICKER_CACHE_TTL_SEC: int = Field(default=60, gt=0)
    TICKER_DEFAULT_FREQUENCY_SEC: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "TICKER_LOG_LEVEL": os.getenv("TICKER_LOG_LEVEL", "INFO").strip().upper(),
            "TICKER_CACHE_BACKEND": os.getenv("TICKER_CACHE_BACKEND", "none").strip().lower(),
            "TICKER_REDIS_URL": os.getenv("TICKER_REDIS_URL"),
            "TICKER_CACHE_TTL_SEC": os.getenv("TICKER_CACHE_TTL_SEC"),
            "TICKER_DEFAULT_FREQUENCY_SEC": os.getenv("TICKER_DEFAULT_FREQUENCY_SEC"),
        }
        # unset values fall back to field defaults
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
