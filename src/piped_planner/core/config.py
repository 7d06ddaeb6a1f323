"""Configuration management for the piped planner."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Planner process settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="PIPED_",
    )

    # Observability
    log_level: str = Field("INFO", description="Log level")
    log_format: str = Field("json", description="Log renderer: json or console")

    # Deploy source
    deployment_config_filename: str = Field(
        ".pipe.yaml",
        description="Name of the deployment configuration file inside the application directory",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return fmt
