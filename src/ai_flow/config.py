import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()

# Free models known to work with the OpenRouter chat completions endpoint
FREE_MODELS: tuple[str, ...] = ("mistralai/mistral-7b-instruct:free",)


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # OpenRouter
    openrouter_api_key: str | None = os.getenv("OPENROUTER_API_KEY")
    openrouter_base_url: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
    openrouter_model: str = os.getenv("OPENROUTER_MODEL", FREE_MODELS[0])
    site_url: str = os.getenv("SITE_URL", "http://localhost:3000")
    app_title: str = os.getenv("APP_TITLE", "AI Flow Visualizer")

    # Document store
    redis_url: str | None = os.getenv("REDIS_URL")
    db_connect_retries: int = int(os.getenv("DB_CONNECT_RETRIES", "5"))
    db_retry_delay: float = float(os.getenv("DB_RETRY_DELAY", "5"))
    store_key_prefix: str = os.getenv("STORE_KEY_PREFIX", "prompt_response")

    # Timeouts (seconds)
    ai_timeout: float = float(os.getenv("AI_TIMEOUT", "25"))
    ai_http_timeout: float = float(os.getenv("AI_HTTP_TIMEOUT", "30"))
    save_timeout: float = float(os.getenv("SAVE_TIMEOUT", "10"))
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "30"))

    # Rate limiting
    rate_limit_max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "30"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    rate_limit_storage_uri: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("PORT", "5000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"
    environment: str = os.getenv("APP_ENV", "production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*"))
    )

    @property
    def is_development(self) -> bool:
        """Whether error responses may carry raw failure details."""
        return self.environment.lower() == "development"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.openrouter_model not in FREE_MODELS:
            raise ValueError(
                f"OPENROUTER_MODEL must be one of {list(FREE_MODELS)}, got {self.openrouter_model!r}"
            )

        if self.db_connect_retries < 1:
            raise ValueError("DB_CONNECT_RETRIES must be at least 1")

        if self.rate_limit_max_requests < 1 or self.rate_limit_window_seconds < 1:
            raise ValueError("Rate limit threshold and window must be positive")

        if min(self.ai_timeout, self.ai_http_timeout, self.save_timeout, self.request_timeout) <= 0:
            raise ValueError("Timeouts must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings) -> redis.Redis:
    """Create an asyncio Redis client for the configured document store."""
    if not settings.redis_url:
        raise ValueError("REDIS_URL is not configured")
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=45,
        max_connections=10,
    )
