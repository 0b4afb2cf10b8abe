"""Application settings using Pydantic Settings."""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import List, Literal

DEV_JWT_SECRET = "dev-secret-example-key-that-is-32-characters"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    app_name: str = "GoalSplit API"
    app_version: str = "1.0.0"
    app_env: Literal["development", "test", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # Public URL of the web app, used for invitation links
    app_url: str = "http://localhost:3000"

    # CORS Configuration
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Database Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db: str = "goalsplit"

    # Session Configuration
    jwt_secret: str = DEV_JWT_SECRET
    session_max_age_seconds: int = 60 * 60 * 24 * 7

    # One-time code Configuration
    otp_expiry_seconds: int = 10 * 60
    otp_rate_limit_window_seconds: int = 60 * 60
    otp_rate_limit_max_requests: int = 5
    demo_logins_enabled: bool = True

    # Invitations
    invite_default_expiry_minutes: int = 60 * 24 * 7

    # Analytics retention
    analytics_retention_days: int = 60
    analytics_cleanup_interval_seconds: int = 60 * 60 * 12

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator("jwt_secret")
    @classmethod
    def check_jwt_secret(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return value

    @model_validator(mode="after")
    def check_production_secrets(self):
        if self.is_production and self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET must be configured in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


# Global settings instance
settings = Settings()
