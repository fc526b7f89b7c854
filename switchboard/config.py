"""Configuration loading for Switchboard.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to vendor credentials and runtime options
"""

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ServerName = Literal["todoist", "woocommerce", "sendgrid", "classroom", "gcp"]


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server selection
    server: ServerName = Field(
        default="todoist",
        description="Vendor tool server to run",
    )
    run_mode: Literal["stdio", "gateway", "cli"] = Field(
        default="stdio",
        description="Run mode",
    )

    # Todoist
    todoist_api_token: str = Field(
        default="",
        description="Todoist personal API token",
    )
    todoist_api_url: str = Field(
        default="https://api.todoist.com/api/v1",
        description="Todoist REST API base URL",
    )

    # WooCommerce
    woocommerce_url: str = Field(
        default="",
        description="WooCommerce store root URL",
    )
    woocommerce_consumer_key: str = Field(
        default="",
        description="WooCommerce REST API consumer key",
    )
    woocommerce_consumer_secret: str = Field(
        default="",
        description="WooCommerce REST API consumer secret",
    )
    woocommerce_query_string_auth: bool = Field(
        default=False,
        description="Send WooCommerce credentials as query parameters over HTTPS",
    )

    # SendGrid
    sendgrid_api_key: str = Field(
        default="",
        description="SendGrid API key",
    )
    sendgrid_api_url: str = Field(
        default="https://api.sendgrid.com",
        description="SendGrid API base URL",
    )

    # Google Classroom
    google_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("google_client_id", "client_id"),
        description="OAuth2 client ID for Google Classroom",
    )
    google_client_secret: str = Field(
        default="",
        validation_alias=AliasChoices("google_client_secret", "client_secret"),
        description="OAuth2 client secret for Google Classroom",
    )
    classroom_token_path: str = Field(
        default="~/.config/switchboard/classroom-token.json",
        description="Where the Classroom OAuth2 user token is stored",
    )
    classroom_redirect_port: int = Field(
        default=0,
        description="Loopback port for the consent redirect (0 picks a free port)",
    )

    # Google Cloud
    gcp_service_account_path: str = Field(
        default="",
        validation_alias=AliasChoices("gcp_service_account_path", "google_application_credentials"),
        description="Service account JSON key file",
    )
    gcp_project_id: str = Field(
        default="",
        description="Default project (falls back to the key's project)",
    )
    gcp_region: str = Field(
        default="us-central1",
        description="Region for AI Platform training jobs",
    )
    gcp_training_image: str = Field(
        default="",
        description="Container image used by submittrainingjob",
    )

    # Timeouts and de-duplication
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Vendor HTTP request timeout in seconds",
    )
    command_timeout_seconds: float = Field(
        default=600.0,
        description="Timeout for gcloud and terraform runs in seconds",
    )
    dedup_window_seconds: float = Field(
        default=30.0,
        description="Window in which identical creates are suppressed (0 disables)",
    )

    # Gateway configuration
    gateway_host: str = Field(
        default="127.0.0.1",
        description="Host to listen on for the HTTP gateway",
    )
    gateway_port: int = Field(
        default=8080,
        description="Port to listen on for the HTTP gateway",
    )
    gateway_api_key: str = Field(
        default="",
        description="API key for gateway authentication",
    )
    gateway_require_auth: bool = Field(
        default=False,
        description="Require API key authentication for gateway endpoints",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Development
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )

    @field_validator("http_timeout_seconds", "command_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure timeouts are positive."""
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("dedup_window_seconds")
    @classmethod
    def validate_dedup_window(cls, v: float) -> float:
        """Ensure the de-duplication window is non-negative."""
        if v < 0:
            raise ValueError("dedup_window_seconds must be non-negative")
        return v

    @field_validator("gateway_port")
    @classmethod
    def validate_gateway_port(cls, v: int) -> int:
        """Ensure gateway port is in valid range."""
        if v < 0 or v > 65535:
            raise ValueError("gateway_port must be between 0 and 65535")
        return v

    @field_validator("classroom_redirect_port")
    @classmethod
    def validate_redirect_port(cls, v: int) -> int:
        if v < 0 or v > 65535:
            raise ValueError("classroom_redirect_port must be between 0 and 65535")
        return v

    @field_validator("woocommerce_url", "todoist_api_url", "sendgrid_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["ServerName", "Settings", "load_settings"]
