"""Shared constants and configuration defaults for Quarry."""

# Logging configuration
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"  # or "json"

# Dispatcher defaults
DEFAULT_DISPATCHER_THREAD_PREFIX = "quarry_dispatch"
DEFAULT_DISPATCHER_SHUTDOWN_TIMEOUT = 10.0  # seconds to wait for in-flight commands

# Multiple queries strategies understood by the search API
MULTIPLE_QUERIES_STRATEGY_NONE = "none"
MULTIPLE_QUERIES_STRATEGY_STOP_IF_ENOUGH_MATCHES = "stopIfEnoughMatches"
MULTIPLE_QUERIES_STRATEGIES = (
    MULTIPLE_QUERIES_STRATEGY_NONE,
    MULTIPLE_QUERIES_STRATEGY_STOP_IF_ENOUGH_MATCHES,
)
DEFAULT_MULTIPLE_QUERIES_STRATEGY = MULTIPLE_QUERIES_STRATEGY_NONE

# Wire tokens
RADIUS_ALL_TOKEN = "all"
