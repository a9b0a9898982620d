"""Application settings loaded from environment variables.

Defines all environment-driven configuration used by the app.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration model for the application."""

    # Search engine
    CACHE_TTL_SECONDS: int = 300
    SEARCH_TIMEOUT_MS: int = 10_000
    MAX_RESULTS_PER_PROVIDER: int = 20
    DEFAULT_CURRENCY: str = "BRL"

    # Providers
    ENABLED_PROVIDERS: list[str] = ["amazon", "magazine_luiza", "casas_bahia"]
    PROVIDER_MODE: Literal["live", "catalog"] = "live"
    CATALOG_PRICE_JITTER: float = 0.05
    CATALOG_FAILURE_RATE: float = 0.0

    # HTTP access to the stores
    HTTP_TIMEOUT_MS: int = 10_000
    HTTP_MAX_RETRIES: int = 2
    HTTP_RETRY_DELAY_MS: int = 1_000
    RATE_LIMIT_INTERVAL_MS: int = 1_000
    JITTER_MIN_MS: int = 500
    JITTER_MAX_MS: int = 2_000

    # API parameters
    ROOT_PATH_BACKEND: str = ""
    ALLOWED_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
