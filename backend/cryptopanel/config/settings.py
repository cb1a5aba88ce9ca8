from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List, Literal

from ..models.market import SYMBOL_ID_MAP

class Settings(BaseSettings):
    """
    Runtime configuration loaded from environment variables.
    Automatically loads values from a .env file if present.

    Built once at startup and handed to every component that needs it;
    instances are frozen so nothing can mutate them afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # allow extra env vars without crashing
        frozen=True,
    )

    # App
    APP_NAME: str = Field("CryptoPanel API", description="Service title")
    APP_VERSION: str = Field("0.1.0", description="Version reported by /healthz")
    RUNTIME_ENV: Literal["dev", "preview", "prod"] = Field("dev", description="Deployment environment")
    LOG_LEVEL: str = Field("INFO", description="Application log level")

    # Server
    HOST: str = Field("0.0.0.0", description="Bind address for uvicorn")
    PORT: int = Field(8000, gt=0, lt=65536, description="Bind port for uvicorn")
    CORS_ALLOW_ORIGINS: List[str] = Field(default=["*"], description="Origins allowed to call the API")

    # Upstream provider
    COINGECKO_BASE_URL: str = Field("https://api.coingecko.com/api/v3", description="Pricing API base URL")
    PROVIDER_TIMEOUT_SECONDS: float = Field(10.0, gt=0, description="Upstream request timeout")

    # Market symbols
    DEFAULT_SYMBOLS: List[str] = Field(
        default=["btc", "eth"],
        description="Symbols returned when a prices request names none"
    )

    # Rate limiting
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = Field(60, gt=0, description="Requests per caller per endpoint per minute")
    RATE_LIMIT_BACKEND: Literal["memory", "redis"] = Field("memory", description="Counter storage backend")
    REDIS_URL: str = Field("redis://localhost:6379/0", description="Redis URL for the redis backend")

    # HTTP caching
    CACHE_S_MAX_AGE_SECONDS: int = Field(60, ge=0, description="Shared cache freshness window")
    CACHE_STALE_WHILE_REVALIDATE_SECONDS: int = Field(120, ge=0, description="Stale-while-revalidate window")

    @field_validator("COINGECKO_BASE_URL")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("COINGECKO_BASE_URL must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("DEFAULT_SYMBOLS")
    @classmethod
    def _lowercase_symbols(cls, value: List[str]) -> List[str]:
        symbols = [s.strip().lower() for s in value if s.strip()]
        if not symbols:
            raise ValueError("DEFAULT_SYMBOLS must name at least one symbol")
        unknown = [s for s in symbols if s not in SYMBOL_ID_MAP]
        if unknown:
            raise ValueError(f"DEFAULT_SYMBOLS has unsupported symbols: {', '.join(unknown)}")
        return symbols

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def cache_control(self) -> str:
        return (
            f"public, s-maxage={self.CACHE_S_MAX_AGE_SECONDS}, "
            f"stale-while-revalidate={self.CACHE_STALE_WHILE_REVALIDATE_SECONDS}"
        )
