"""Shared configuration management using pydantic-settings.

Provides centralized configuration with environment variable support
for the Quarry client components.

Environment Variables:
    QUARRY_LOG_LEVEL - Logging level (default: INFO)
    QUARRY_LOG_FORMAT - Log format: json or console (default: console)
    QUARRY_LOG_FILE - Optional log file path (default: unset, log to stdout)
    QUARRY_DEBUG - Enable debug mode (default: false)

    Dispatcher Configuration:
    QUARRY_DISPATCHER_MAX_WORKERS - Worker threads for background commands
        (default: unset, executor default)
    QUARRY_DISPATCHER_THREAD_NAME_PREFIX - Worker thread name prefix (default: quarry_dispatch)
    QUARRY_DISPATCHER_SHUTDOWN_TIMEOUT - Seconds to wait for in-flight commands (default: 10.0)

    Search Configuration:
    QUARRY_MULTIPLE_QUERIES_STRATEGY - Default multi-query strategy:
        none or stopIfEnoughMatches (default: none)

Example:
    export QUARRY_LOG_LEVEL=DEBUG
    export QUARRY_DISPATCHER_MAX_WORKERS=8
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .constants import (
    DEFAULT_DISPATCHER_SHUTDOWN_TIMEOUT,
    DEFAULT_DISPATCHER_THREAD_PREFIX,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MULTIPLE_QUERIES_STRATEGY,
)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class QuarryConfig(BaseSettings):
    """Configuration shared by all Quarry components."""

    # Logging configuration
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: Literal["json", "console"] = DEFAULT_LOG_FORMAT
    log_file: Optional[Path] = None

    # Debug mode
    debug: bool = False

    # Command dispatcher
    dispatcher_max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker threads for background commands (None = executor default)"
    )
    dispatcher_thread_name_prefix: str = DEFAULT_DISPATCHER_THREAD_PREFIX
    dispatcher_shutdown_timeout: float = DEFAULT_DISPATCHER_SHUTDOWN_TIMEOUT

    # Search defaults
    multiple_queries_strategy: Literal["none", "stopIfEnoughMatches"] = Field(
        default=DEFAULT_MULTIPLE_QUERIES_STRATEGY,
        description="Strategy used by multiple_queries_async when none is given"
    )

    model_config = {
        "env_prefix": "QUARRY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Ignore unknown environment variables
    }

    @field_validator('log_level', mode='after')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the level and reject names logging does not know."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid: {sorted(_LOG_LEVELS)}")
        return level

    def get_log_level(self) -> str:
        """Get log level string for structlog; debug mode forces DEBUG."""
        return "DEBUG" if self.debug else self.log_level


# Global configuration instance
config = QuarryConfig()
