"""Configuration settings for dtcheck, loaded from environment variables."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AnalysisSettings(BaseSettings):
    """Settings for the graph walk bound, model checker warnings and logging.

    The walk bound is the number of nodes a single evaluation may visit
    before it is reported as a probable cycle.
    """

    model_config = SettingsConfigDict(
        env_prefix="DTCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_walk_steps: int = Field(
        default=100,
        ge=1,
        description="Maximum number of nodes visited by a single graph walk.",
    )
    combination_warning_threshold: int = Field(
        default=10_000,
        ge=1,
        description="Combination count above which the model checker logs a warning.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level used by the command line interface.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize the log level from env (e.g. debug -> DEBUG)."""
        if not isinstance(v, str) or not v.strip():
            return "WARNING"
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            msg = f"Unknown log level '{v}'. Expected one of {', '.join(_LOG_LEVELS)}."
            raise ValueError(msg)
        return level


# Singleton instance for application-wide use
analysis_settings = AnalysisSettings()
