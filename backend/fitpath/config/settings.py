"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "FitPath API"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # development, production, test

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    jwt_issuer: str = "fitness-app"
    jwt_audience: str = "fitness-app-users"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 12
    max_refresh_tokens: int = 5  # per user, oldest dropped on login

    # Rate limiting, per client IP
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max_requests: int = 100

    # Storage
    storage_type: str = "local"  # only local is implemented
    local_storage_path: str = "./data"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:19006",
        "exp://localhost:19000",
        "http://localhost:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/fitpath.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
