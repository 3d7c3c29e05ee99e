"""Configuration management"""

import logging

from pydantic import Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== Database ====================
    database_url: str = Field(..., description="PostgreSQL connection string")
    db_pool_min_size: int = Field(default=2, description="Minimum pool size")
    db_pool_max_size: int = Field(default=10, description="Maximum pool size")
    db_command_timeout: int = Field(default=60, description="Statement timeout (seconds)")

    # ==================== Runtime ====================
    timezone: str = Field(default="Asia/Tokyo", description="Local time zone for timestamps and daily stats")
    shutdown_grace_seconds: float = Field(
        default=5.0, description="How long shutdown waits for completions already in flight"
    )

    # ==================== Session rules ====================
    min_planned_duration: int = Field(default=5, ge=1, description="Shortest rental (minutes)")
    max_planned_duration: int = Field(default=600, description="Longest rental (minutes)")
    min_extension_minutes: int = Field(default=15, ge=1, description="Smallest single extension (minutes)")
    max_extension_minutes: int = Field(default=120, description="Largest single extension (minutes)")
    max_extensions_per_session: int = Field(default=3, description="Extensions allowed per session")
    max_total_extension_minutes: int = Field(default=240, description="Cap on summed extensions (minutes)")

    # ==================== Logging ====================
    log_level_str: str = Field(default="INFO", alias="LOG_LEVEL", description="Log level: DEBUG, INFO, WARNING, ERROR")

    @field_validator("log_level_str")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @property
    def log_level(self) -> int:
        """Logging level constant"""
        return getattr(logging, self.log_level_str)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the settings instance (created on first use)"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
