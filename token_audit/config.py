"""Configuration management for the token audit app."""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Token Audit"

    # Security scan provider (GoPlus)
    goplus_base_url: str = "https://api.gopluslabs.io/api/v1"
    goplus_access_token: Optional[str] = None

    # Market data provider (DexTools)
    dextools_base_url: str = "https://public-api.dextools.io/trial/v2"
    dextools_api_key: Optional[str] = None

    # Outbound HTTP
    http_timeout: float = 20.0

    # Request-level memoization
    cache_ttl: int = 60
    cache_maxsize: int = 256

    # Comma-separated list of allowed origins, "*" for any
    cors_origins: str = "*"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def get_cors_origins(self) -> List[str]:
        """Parse the allowed CORS origins."""
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
