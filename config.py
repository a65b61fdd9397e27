"""
Configuration settings for the OracleMint card cache
Loads environment variables and provides application settings
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API Configuration
    port: int = Field(default=8000)

    # Database Configuration
    database_path: str = Field(default="data/oraclemint.sqlite3")

    # Scryfall
    scryfall_base_url: str = Field(default="https://api.scryfall.com")
    scryfall_user_agent: str = Field(default="OracleMint/1.0 (https://oraclemint.vercel.app)")
    scryfall_min_request_interval: float = Field(default=0.1)  # 10 requests/second
    scryfall_max_retries: int = Field(default=3)
    scryfall_retry_delay: float = Field(default=1.0)
    scryfall_rate_limit_wait: float = Field(default=1.0)  # used when Retry-After is missing

    # Cache Configuration
    cache_ttl: int = Field(default=3600)  # 1 hour default

    # Logging
    log_level: str = Field(default="INFO")

    # Timeout Configuration
    external_api_timeout: int = Field(default=30)
    external_api_connect_timeout: int = Field(default=8)
    external_api_write_timeout: int = Field(default=8)
    bulk_download_read_timeout: int = Field(default=60)

    # Bulk sync (runtime budget leaves margin under a 60s serverless ceiling)
    sync_batch_size: int = Field(default=500)
    sync_max_runtime_seconds: float = Field(default=55.0)

    # CORS Configuration
    allowed_origins: List[str] = Field(default=["*"])


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()


# Global settings instance
settings = get_settings()
