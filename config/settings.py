"""
PriceFeed Application Settings
Configuration management using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    app_name: str = "PriceFeed"
    debug: bool = Field(default=False, env="DEBUG")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379", env="REDIS_URL")
    redis_socket_timeout: float = Field(default=5.0, env="REDIS_SOCKET_TIMEOUT")
    redis_connect_timeout: float = Field(default=5.0, env="REDIS_CONNECT_TIMEOUT")

    # Collection
    collection_interval_seconds: int = Field(default=300, env="COLLECTION_INTERVAL_SECONDS")
    max_datapoints: int = Field(default=720, env="MAX_DATAPOINTS")
    pairs_file: str = Field(default="pairs.json", env="PAIRS_FILE")
    scheduler_enabled: bool = Field(default=True, env="SCHEDULER_ENABLED")
    run_on_startup: bool = Field(default=True, env="RUN_ON_STARTUP")

    # Fallback OHLC source (Kraken public API)
    fallback_base_url: str = Field(default="https://api.kraken.com", env="FALLBACK_BASE_URL")
    fallback_timeout: float = Field(default=10.0, env="FALLBACK_TIMEOUT")
    fallback_max_samples: int = Field(default=720, env="FALLBACK_MAX_SAMPLES")
    fallback_init_interval_minutes: int = Field(default=1440, env="FALLBACK_INIT_INTERVAL_MINUTES")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()
