"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "IVF Asistan"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",")]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="PostgreSQL connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # Admin Authentication (JWT)
    # ================================
    # Tokens are issued by the admin panel; this service only verifies them
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # one admin working day

    # ================================
    # Response Cache
    # ================================
    CACHE_TTL_HOURS: int = 24
    CACHE_INVALIDATE_ON_CONTENT_CHANGE: bool = True

    # ================================
    # Chat / Rate Limiting
    # ================================
    CHAT_MAX_MESSAGE_LENGTH: int = 2000
    RATE_LIMIT_PER_MINUTE: int = 10  # Requests per session per window
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # ================================
    # RAG Configuration
    # ================================
    RAG_TOP_K: int = 5
    RAG_MIN_SCORE: float = 0.3
    RAG_SNIPPET_CHARS: int = 300

    # ================================
    # Completion Service (Anthropic Claude)
    # ================================
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"
    ANTHROPIC_MAX_TOKENS: int = 1000
    ANTHROPIC_TEMPERATURE: float = 0.7

    # ================================
    # Embedding Configuration
    # ================================
    # Multilingual model: content and questions are Turkish
    EMBEDDING_MODEL: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
    EMBEDDING_DIMENSION: int = 384
    EMBEDDING_BATCH_SIZE: int = 32
    EMBEDDING_DEVICE: Literal["cpu", "cuda", "mps"] = "cpu"

    # ================================
    # Media Understanding Service (video analysis)
    # ================================
    # Any OpenAI-compatible chat completions endpoint that accepts video_url parts
    MEDIA_API_KEY: Optional[str] = None
    MEDIA_API_URL: str = "https://api.moonshot.ai/v1"
    MEDIA_MODEL: str = "kimi-k2.5"
    MEDIA_REQUEST_TIMEOUT: int = 180
    VIDEO_ANALYSIS_MAX_RETRIES: int = 3
    VIDEO_ANALYSIS_BACKOFF_BASE_MS: int = 2000

    # ================================
    # Celery Configuration
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    # Celery accept content as comma-separated string, we'll parse it
    CELERY_ACCEPT_CONTENT: str = "json"
    CELERY_TIMEZONE: str = "UTC"
    CELERY_ENABLE_UTC: bool = True

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Parse CELERY_ACCEPT_CONTENT into a list."""
        return [item.strip() for item in self.CELERY_ACCEPT_CONTENT.split(",")]

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def is_sqlite(self) -> bool:
        """SQLite (aiosqlite) is accepted for local runs and tests."""
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
settings = Settings()
