"""
Company Pipeline Backend: Application Configuration
===================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py, pipeline.py and the middleware.
When:  Loaded once at module import time; validated before app starts.

Pipeline ordering:
    PIPELINE_BEHAVIORS is a comma-separated list of behavior names from the
    catalog in pipeline.py. Registration order IS execution order:

        PIPELINE_BEHAVIORS=log_requests,add_key,add_hash

        log_requests → add_key → add_hash → CreateCompanyHandler
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Attributes are grouped by concern for readability.
    """

    app_name: str = Field(default="Company Pipeline API")

    # ── Pipeline ──────────────────────────────────────────────────────────
    # What: Ordered behavior names applied to CreateCompanyRequest
    # Format: Comma-separated catalog names (parsed by the property below)
    pipeline_behaviors: str = Field(
        default="log_requests,add_key,add_hash",
        description="Ordered, comma-separated pipeline behavior names",
    )

    # What: Fixed prefix of generated company keys ("123456789-<token>")
    key_prefix: str = Field(default="123456789-")

    # What: How many characters of a fresh UUID follow the prefix
    # Valid range: 1-36 (a canonical UUID string is 36 characters)
    key_token_length: int = Field(default=20, ge=1, le=36)

    @property
    def pipeline_behaviors_list(self) -> List[str]:
        """Splits the comma-separated behavior names, preserving order."""
        return [
            name.strip() for name in self.pipeline_behaviors.split(",") if name.strip()
        ]

    @field_validator("pipeline_behaviors")
    @classmethod
    def validate_pipeline_behaviors(cls, v: str) -> str:
        """Rejects duplicated names; each behavior runs once per dispatch."""
        names = [name.strip() for name in v.split(",") if name.strip()]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate behavior in pipeline_behaviors '{v}'")
        return v

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported throughout the application
settings = Settings()
