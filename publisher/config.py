"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file and override existing env vars
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # GitHub (repository provider)
    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("github_token", "github_access_token"),
    )
    github_api_url: str = "https://api.github.com"

    # Vercel (hosting provider); vercel_token is the shared system credential
    vercel_token: str = Field(
        default="",
        validation_alias=AliasChoices("vercel_token", "vercel_api_token"),
    )
    vercel_team_id: str | None = None
    vercel_api_url: str = "https://api.vercel.com"

    # Deployment pipeline
    system_deployment_limit: int = Field(default=3, ge=0)
    default_branch: str = "main"
    commit_message: str = "Initial project setup via App Publisher deployment"
    provider_timeout_seconds: float | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str = "logs"
    log_file_name: str = "publisher.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
