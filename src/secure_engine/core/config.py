"""Configuration management for the scan client.

Loads configuration from environment variables using Pydantic models.
Provides sensible defaults for all settings while allowing override via
environment.

Provides:
- Config: Pydantic model with all client settings
- load_config: Factory function to create Config instance
"""

import os

from pydantic import BaseModel, ConfigDict, Field

from secure_engine.core.scoring import ScoringPolicy

DEFAULT_API_URL = "http://localhost:8000/api/v1"


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


class Config(BaseModel):
    """Client configuration loaded from the environment.

    Attributes:
        api_url: Base URL of the scan service (from SECURE_ENGINE_API_URL)
        timeout_seconds: Total request timeout; uploads block until the scan
            finishes, so this is generous
        history_page_size: Default number of rows per history page
        error_weight: Fallback scoring weight of ERROR findings
        warning_weight: Fallback scoring weight of WARNING findings
        info_weight: Fallback scoring weight of INFO findings
    """

    model_config = ConfigDict(validate_default=True)

    api_url: str = Field(
        default_factory=lambda: os.getenv("SECURE_ENGINE_API_URL", DEFAULT_API_URL)
    )
    timeout_seconds: float = Field(
        default_factory=lambda: _env_float("SECURE_ENGINE_TIMEOUT", 300.0), gt=0
    )
    history_page_size: int = Field(
        default_factory=lambda: _env_int("SECURE_ENGINE_PAGE_SIZE", 10), ge=1
    )

    # Scoring policy
    error_weight: float = Field(
        default_factory=lambda: _env_float("SECURE_ENGINE_ERROR_WEIGHT", 1.0), ge=0.0, le=1.0
    )
    warning_weight: float = Field(
        default_factory=lambda: _env_float("SECURE_ENGINE_WARNING_WEIGHT", 0.5), ge=0.0, le=1.0
    )
    info_weight: float = Field(
        default_factory=lambda: _env_float("SECURE_ENGINE_INFO_WEIGHT", 0.1), ge=0.0, le=1.0
    )

    def scoring_policy(self) -> ScoringPolicy:
        """Build the ScoringPolicy described by this config."""
        return ScoringPolicy(
            error_weight=self.error_weight,
            warning_weight=self.warning_weight,
            info_weight=self.info_weight,
        )


def load_config() -> Config:
    """Load configuration from environment.

    Creates a Config instance with values from environment variables,
    falling back to defaults for any unset values.

    Returns:
        Populated Config instance
    """
    return Config()
