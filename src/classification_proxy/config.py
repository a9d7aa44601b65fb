"""
Configuration settings for the Classification Proxy.

All settings are loaded from environment variables with sensible defaults.
Use a .env file for local development.
"""

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing import Annotated, Any, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Classification Proxy"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Completion Provider ===
    MODEL_ENDPOINT: str = "https://api.openai.com/v1/chat/completions"
    MODEL_NAME: str = "gpt-4-turbo"
    MODEL_API_KEY: Optional[SecretStr] = None  # Never logged in full
    MODEL_TIMEOUT: float = 30.0  # seconds
    MODEL_MAX_RETRIES: int = 1  # Connection-level attempts (1 = no retry)

    # === Classification ===
    CLASSIFIER_MAX_BATCH_SIZE: int = 50  # Hard cap, silently truncated above
    CONTENT_PROMPT_LIMIT: int = 500  # chars of each item sent to the model
    PREFERENCE_PROMPT_LIMIT: int = 1000  # chars of preference sent to the model
    TOKENS_PER_ITEM: int = 10
    MIN_OUTPUT_TOKENS: int = 50
    LLM_TEMPERATURE: float = 0.0  # Caching depends on reproducible output
    LLM_SEED: Optional[int] = 42  # Fixed seed where the provider honors one
    PROMPT_TEMPLATES_DIR: Optional[str] = None  # Defaults to packaged templates

    # === Circuit Breaker ===
    CIRCUIT_BREAKER_MAX_FAILURES: int = 3
    CIRCUIT_BREAKER_RESET_SECONDS: float = 60.0

    # === Result Cache ===
    CACHE_MAX_SIZE: int = 10000
    CACHE_TTL_SECONDS: float = 3600.0  # 1 hour
    CACHE_SWEEP_INTERVAL_SECONDS: float = 60.0
    INFLIGHT_TIMEOUT_SECONDS: float = 30.0

    # === Quota ===
    DEFAULT_TIER: str = "free"
    QUOTA_RESET_HOUR_UTC: int = 0
    BURST_WINDOW_SECONDS: float = 60.0
    QUOTA_IDLE_RETENTION_SECONDS: float = 7 * 24 * 3600.0
    QUOTA_SWEEP_INTERVAL_SECONDS: float = 6 * 3600.0

    # === Anonymous Identity ===
    FINGERPRINT_MAX_IDENTITIES: int = 5
    FINGERPRINT_ACTIVE_WINDOW_SECONDS: float = 24 * 3600.0
    IDENTITY_RETENTION_SECONDS: float = 30 * 24 * 3600.0
    IDENTITY_SWEEP_INTERVAL_SECONDS: float = 6 * 3600.0
    TOKEN_BYTES: int = 32  # 256 bits

    # === Request Handling ===
    MAX_BATCH_SIZE: int = 50
    MAX_CONTENT_LENGTH: int = 10000
    MAX_PREFERENCE_LENGTH: int = 1000
    DEFAULT_PREFERENCE: str = "Filter harmful, explicit, and abusive content"
    REQUEST_TIMEOUT_SECONDS: float = 8.0  # Serverless budget ~10s, leave buffer
    MAX_PAYLOAD_SIZE_BYTES: int = 100 * 1024  # Larger bodies are rejected before parsing
    # Comma-separated in the environment, "*" is a wildcard
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = ["chrome-extension://*"]

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    # === Feature Flags ===
    ENABLE_MAINTENANCE_TASKS: bool = True  # Periodic sweeps tied to app lifespan

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


# Global settings instance
settings = Settings()
