"""Configuration management for the problem insights dashboard."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # LLM settings
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4-turbo-preview", alias="OPENAI_MODEL")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")

    # Problem source settings
    problem_source: Literal["mock", "dynatrace"] = Field(
        default="mock", alias="PROBLEM_SOURCE"
    )
    dynatrace_base_url: str | None = Field(default=None, alias="DYNATRACE_BASE_URL")
    dynatrace_api_token: str | None = Field(default=None, alias="DYNATRACE_API_TOKEN")
    mock_delay_seconds: float = Field(default=0.0, alias="MOCK_DELAY_SECONDS")

    # HTTP
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    rate_limit_requests_per_second: float = Field(
        default=1.0, alias="RATE_LIMIT_REQUESTS_PER_SECOND"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    def get_api_key(self) -> str:
        """Get the LLM API key, raising if it is not configured."""
        if not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Please add OPENAI_API_KEY to your .env file."
            )
        return self.openai_api_key

    def get_dynatrace_credentials(self) -> tuple[str, str]:
        """Get the Dynatrace base URL and API token."""
        if not self.dynatrace_base_url:
            raise ConfigurationError("DYNATRACE_BASE_URL not set")
        if not self.dynatrace_api_token:
            raise ConfigurationError("DYNATRACE_API_TOKEN not set")
        return self.dynatrace_base_url, self.dynatrace_api_token


# Global settings instance
settings = Settings()
