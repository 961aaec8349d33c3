# config.py
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    # Env values arrive as strings; validating defaults lets pydantic coerce
    # and check them like explicit arguments.
    model_config = ConfigDict(validate_default=True)

    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: os.getenv("PORT", "3001"))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    cors_origins: List[str] = Field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))

    # Broadcast cadence and metrics window
    broadcast_interval_ms: int = Field(default_factory=lambda: os.getenv("BROADCAST_INTERVAL_MS", "1000"))
    metrics_window_seconds: float = Field(default_factory=lambda: os.getenv("METRICS_WINDOW_SECONDS", "5"))
    metrics_log_capacity: int = Field(default_factory=lambda: os.getenv("METRICS_LOG_CAPACITY", "1000"))
    shutdown_grace_seconds: float = Field(default_factory=lambda: os.getenv("SHUTDOWN_GRACE_SECONDS", "5"))
    price_feed_seed: Optional[int] = Field(default_factory=lambda: os.getenv("PRICE_FEED_SEED") or None)

    # Analysis providers, checked in this order
    groq_api_key: str = Field(default_factory=lambda: os.getenv("GROQ_API_KEY", ""))
    xai_api_key: str = Field(default_factory=lambda: os.getenv("XAI_API_KEY", ""))
    openai_api_key: str = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 <= value <= 65535:
            raise ValueError("must be between 0 and 65535")
        return value

    @field_validator("broadcast_interval_ms", "metrics_log_capacity")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("metrics_window_seconds")
    @classmethod
    def _positive_window(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("shutdown_grace_seconds")
    @classmethod
    def _non_negative_grace(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must be >= 0")
        return value
