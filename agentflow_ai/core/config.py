"""
Configuration Settings.

This module defines the SDK configuration using Pydantic's BaseSettings.
All values are loaded from environment variables and an optional ``.env`` file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", alias="AGENTFLOW_AI_LOG_LEVEL", description="Root console log level")
    format: str = Field(default="detailed", alias="LOG_FORMAT", description="Log format (simple, detailed, json)")
    file_dir: str = Field(default="logs", alias="LOG_FILE_DIR", description="Directory for the log file")
    enable_file: bool = Field(default=False, alias="ENABLE_FILE_LOGGING", description="Write logs to a file")

    model_config = {"populate_by_name": True}


class FlowConfig(BaseModel):
    """Flow execution engine configuration."""

    max_depth: int = Field(
        default=100, alias="AGENTFLOW_FLOW_MAX_DEPTH", description="Maximum nesting depth of a flow tree"
    )
    default_model: str = Field(
        default="gpt-4", alias="AGENTFLOW_DEFAULT_MODEL", description="Model used when neither node nor agent names one"
    )

    model_config = {"populate_by_name": True}


class RetryConfig(BaseModel):
    """Default retry/backoff configuration (delays are in seconds)."""

    max_attempts: int = Field(default=3, alias="AGENTFLOW_RETRY_MAX_ATTEMPTS")
    initial_delay: float = Field(default=1.0, alias="AGENTFLOW_RETRY_INITIAL_DELAY")
    max_delay: float = Field(default=60.0, alias="AGENTFLOW_RETRY_MAX_DELAY")
    backoff_multiplier: float = Field(default=2.0, alias="AGENTFLOW_RETRY_BACKOFF_MULTIPLIER")

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    SDK settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="AGENTFLOW_AI_LOG_LEVEL",
    )
    log_format: str = Field(default="detailed", description="Log format (simple, detailed, json)", alias="LOG_FORMAT")
    log_file_dir: str = Field(default="logs", description="Directory for the log file", alias="LOG_FILE_DIR")
    enable_file_logging: bool = Field(
        default=False, description="Whether to also write logs to a file", alias="ENABLE_FILE_LOGGING"
    )

    # =====================================================================
    # Flow Engine
    # =====================================================================
    flow_max_depth: int = Field(
        default=100,
        description="Maximum nesting depth enforced by the flow executor",
        alias="AGENTFLOW_FLOW_MAX_DEPTH",
    )
    default_model: str = Field(
        default="gpt-4",
        description="Model used by llmCall nodes when neither the node nor the agent names one",
        alias="AGENTFLOW_DEFAULT_MODEL",
    )

    # =====================================================================
    # Retry
    # =====================================================================
    retry_max_attempts: int = Field(default=3, alias="AGENTFLOW_RETRY_MAX_ATTEMPTS")
    retry_initial_delay: float = Field(default=1.0, alias="AGENTFLOW_RETRY_INITIAL_DELAY")
    retry_max_delay: float = Field(default=60.0, alias="AGENTFLOW_RETRY_MAX_DELAY")
    retry_backoff_multiplier: float = Field(default=2.0, alias="AGENTFLOW_RETRY_BACKOFF_MULTIPLIER")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return LoggingConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def flow(self) -> FlowConfig:
        """Get flow engine configuration."""
        return FlowConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def retry(self) -> RetryConfig:
        """Get default retry configuration."""
        return RetryConfig.model_validate(self.model_dump(by_alias=True))


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings instance, creating it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


settings = get_settings()
