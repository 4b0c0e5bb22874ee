from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyHttpUrl

class Settings(BaseSettings):
    github_api_base_url: AnyHttpUrl = "https://api.github.com"
    github_api_version: str = "2022-11-28"

    # Shared HTTP client (one pool for the whole process)
    request_timeout_seconds: float = 30.0
    max_connections: int = 100
    max_keepalive_connections: int = 100
    keepalive_expiry_seconds: float = 90.0

    # Collection pagination
    default_items_per_page: int = 10
    max_items_per_page: int = 100

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
