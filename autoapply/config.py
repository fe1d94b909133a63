"""
Configuration management for the AutoApply pipeline.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # LLM
    deepseek_api_key: str = ""
    deepseek_model: str = "deepseek-chat"

    # Discovery APIs
    tavily_api_key: str = ""
    brave_api_key: str = ""

    # Database
    database_url: str = ""

    # Notifications (empty = log only)
    notify_webhook_url: str = ""

    # Pipeline settings
    cooldown_minutes: int = 5
    poll_interval: float = 2.0
    max_search_results: int = 15
    search_timeout: float = 30.0
    score_cache_ttl: int = 3600

    # Backoff executor defaults
    backoff_max_retries: int = 3
    backoff_base_delay: float = 1.0
    backoff_max_delay: float = 5.0

    # API
    rate_limit_enabled: bool = True
    cors_origins: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars


settings = Settings()
