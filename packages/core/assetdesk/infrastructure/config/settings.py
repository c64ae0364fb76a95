"""Configuration settings using pydantic-settings."""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from assetdesk.infrastructure.config.file_loader import ConfigurationFileLoader


class AppSettings(BaseSettings):
    """Configuration settings for AssetDesk.

    Settings are read from environment variables prefixed with 'ASSETDESK_'
    (e.g., ASSETDESK_STORE_BACKEND=mongo), passed as keyword arguments, or
    loaded from the `settings` section of a YAML/JSON file.

    Example:
        ```python
        # From environment variables
        settings = AppSettings()

        # Explicit values
        settings = AppSettings(store_backend="memory", log_level="DEBUG")

        # From file
        settings = AppSettings.from_file("assetdesk.yaml")
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSETDESK_",
        case_sensitive=False,
        extra="ignore",
    )

    # DocumentStore configuration
    store_backend: Literal["memory", "mongo"] = Field(
        default="mongo",
        description="Document store backend",
    )
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    database_name: str = Field(default="assetdesk", description="MongoDB database name")
    mongodb_max_pool_size: int = Field(default=100, ge=1)
    mongodb_min_pool_size: int = Field(default=0, ge=0)
    mongodb_connect_timeout_ms: int = Field(default=20000, ge=1)
    mongodb_server_selection_timeout_ms: int = Field(default=5000, ge=1)
    seed_file: Path | None = Field(
        default=None,
        description="YAML/JSON file whose seed section is loaded on startup",
    )

    # Suggestion service configuration
    groq_api_key: str | None = Field(
        default=None,
        description="Groq API key; without it suggestions use the local fallback",
    )
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1")
    groq_model: str = Field(default="llama-3.1-8b-instant")
    suggestion_timeout_seconds: float = Field(default=30.0, gt=0)

    # Incident triage configuration
    elevated_role: str = Field(
        default="superadmin",
        description="Admin role that sees incidents of every department",
    )

    # Observability configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # API configuration
    shutdown_timeout_seconds: float = Field(default=30.0, gt=0)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "AppSettings":
        """Create settings from a dictionary."""
        return cls(**config)

    @classmethod
    def from_file(cls, path: str | Path) -> "AppSettings":
        """Create settings from the `settings` section of a YAML or JSON file.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        loader = ConfigurationFileLoader(path)
        return cls.from_dict(loader.parse_settings(loader.load()))
