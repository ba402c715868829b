from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(default="postgresql+asyncpg://shiftdesk:shiftdesk@db:5432/shiftdesk")
    sql_echo: bool = Field(default=False)

    # Auth
    jwt_secret_key: str = Field(default="change-me")
    token_expire_seconds: int = Field(default=86400)

    # HTTP
    cors_origins: list[str] = Field(default=["*"])

    # Logging
    log_level: str = Field(default="INFO")

    # Demo data seeded on startup (one hospital, an admin and two doctors)
    seed_demo_data: bool = Field(default=False)

    # Realtime
    realtime_queue_size: int = Field(default=100)

    # Dashboard notifications look back this many days
    dashboard_window_days: int = Field(default=30)

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
