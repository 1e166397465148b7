"""Quarry Common - Shared utilities for Quarry components.

Configuration, constants, exceptions and structured logging used by
quarry_client. It has no dependencies on other Quarry packages.
"""

__version__ = "0.1.0"

from .config import QuarryConfig, config
from .constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_FORMAT,
    DEFAULT_MULTIPLE_QUERIES_STRATEGY,
    MULTIPLE_QUERIES_STRATEGIES,
)
from .exceptions import (
    QuarryError,
    TransportError,
    QuarryTimeoutError,
    ServerError,
    InvalidRequestError,
    InvalidParameterError,
)
from .logging import (
    configure_structlog,
    get_bound_logger,
    operation_context,
    command_context,
)

__all__ = [
    # Version
    "__version__",

    # Config
    "QuarryConfig",
    "config",

    # Constants
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_MULTIPLE_QUERIES_STRATEGY",
    "MULTIPLE_QUERIES_STRATEGIES",

    # Exceptions
    "QuarryError",
    "TransportError",
    "QuarryTimeoutError",
    "ServerError",
    "InvalidRequestError",
    "InvalidParameterError",

    # Logging utilities
    "configure_structlog",
    "get_bound_logger",
    "operation_context",
    "command_context",
]
