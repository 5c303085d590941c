"""
Centralised configuration loaded from environment variables.

All settings live here — never scattered across modules.
Using pydantic-settings gives us type validation and .env file support for free.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    alerts_feed_url: str = "https://api.transport.nsw.gov.au/v2/gtfs/alerts/all"
    add_info_url: str = "https://api.transport.nsw.gov.au/v1/tp/add_info?outputFormat=rapidJSON"
    api_key: str = ""

    cache_ttl_seconds: float = 30.0
    fetch_timeout_seconds: float = 10.0
    fetch_retries: int = 3  # retries after the first attempt
    request_timeout_seconds: float = 25.0
    warm_cache_on_startup: bool = True

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 4000

    class Config:
        env_file = ".env"


# Single shared instance — import this everywhere
settings = Settings()
