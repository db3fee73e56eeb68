"""
Application Settings
Reads all configuration from the environment and .env file.
"""

from pathlib import Path
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator


class AuditAgentSettings(BaseSettings):
    """Audit agent configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Metadata
    app_title: str = Field(
        default="UX Audit Agent",
        description="Application title"
    )
    app_icon: str = Field(
        default="📋",
        description="Application icon"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # LLM Configuration
    llm_provider: Literal["gemini", "openai"] = Field(
        default="gemini",
        description="LLM provider to use"
    )
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
        description="Gemini API key (GEMINI_API_KEY or API_KEY)"
    )
    flash_model: str = Field(
        default="gemini-3-flash-preview",
        description="Fast model used for analysis, stories and QA steps"
    )
    pro_model: str = Field(
        default="gemini-3-pro-preview",
        description="Reasoning model used for proposal and documentation steps"
    )
    thinking_budget: int = Field(
        default=32768,
        ge=0,
        description="Thinking token budget for reasoning steps"
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key"
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name, used for every step"
    )
    llm_temperature: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Optional temperature override"
    )
    llm_timeout: int = Field(
        default=300,
        gt=0,
        description="LLM request timeout in seconds"
    )

    # Input Limits
    max_pdf_size_mb: int = Field(
        default=50,
        gt=0,
        description="Maximum PDF size in MB"
    )

    # Storage
    db_path: str = Field(
        default="./data/audit_agent.db",
        description="SQLite database path for preferences and run history"
    )
    history_limit: int = Field(
        default=50,
        gt=0,
        description="Number of runs shown in history"
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format"
    )
    log_file: str = Field(
        default="./logs/audit_agent.log",
        description="Log file path, empty to disable"
    )
    log_rotation: str = Field(
        default="10MB",
        description="Log rotation size"
    )
    log_retention_days: int = Field(
        default=7,
        gt=0,
        description="Number of rotated log files kept"
    )

    # Metrics Configuration
    enable_metrics: bool = Field(
        default=True,
        description="Enable metrics collection"
    )
    metrics_file: str = Field(
        default="./metrics/audit_agent_metrics.json",
        description="Metrics file path"
    )

    @field_validator("db_path", "log_file", "metrics_file")
    @classmethod
    def ensure_directory_exists(cls, v):
        """Ensure parent directory exists for file paths."""
        if v:
            Path(v).parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def max_pdf_size_bytes(self) -> int:
        """Get maximum PDF size in bytes."""
        return self.max_pdf_size_mb * 1024 * 1024

    def api_key_for(self, provider: Optional[str] = None) -> str:
        """API key of a provider (the configured one by default)."""
        if (provider or self.llm_provider) == "openai":
            return self.openai_api_key
        return self.gemini_api_key

    def api_key_env_name(self, provider: Optional[str] = None) -> str:
        return "OPENAI_API_KEY" if (provider or self.llm_provider) == "openai" else "API_KEY"


# Global settings instance
settings = AuditAgentSettings()
